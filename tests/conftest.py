"""Shared fixtures: local bare repositories standing in for GitHub remotes."""

import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from testkit.services.github_repositories import GitHubRepositories

pytest_plugins = ["pytester"]

API_URL = "https://api.github.test"
OWNER = "acme"
REPO = "widgets"


def git(cwd, *args):
    """Run git in cwd and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, check=True,
        stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True,
    )
    return result.stdout


@dataclass
class Remote:
    """A bare repository served at <base_url>/<owner>/<repo>.git."""
    base_url: str
    bare: Path
    owner: str
    repo: str

    def sha(self, ref="main"):
        return git(self.bare, "rev-parse", ref).strip()

    def show(self, ref, path):
        return git(self.bare, "show", f"{ref}:{path}")

    def tags(self):
        return git(self.bare, "tag", "--list").split()


def make_remote(root: Path, owner=OWNER, repo=REPO, files=None):
    """Create a bare remote with an initial commit on main."""
    files = files or {"README.md": "# widgets\n", "src/app.py": "print('hi')\n"}

    seed = root / "seed" / owner / repo
    seed.mkdir(parents=True)
    for rel, content in files.items():
        path = seed / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    git(seed, "init")
    git(seed, "symbolic-ref", "HEAD", "refs/heads/main")
    git(seed, "add", ".")
    git(seed, "commit", "-m", "init")

    remotes = root / "remotes"
    bare = remotes / owner / f"{repo}.git"
    bare.parent.mkdir(parents=True)
    git(root, "init", "--bare", str(bare))
    git(seed, "remote", "add", "origin", str(bare))
    git(seed, "push", "origin", "main")
    git(bare, "symbolic-ref", "HEAD", "refs/heads/main")

    return Remote(base_url=f"file://{remotes.resolve()}", bare=bare, owner=owner, repo=repo)


@pytest.fixture(autouse=True)
def git_identity(tmp_path, monkeypatch):
    """Isolate tests from the user's git configuration."""
    config = tmp_path / "gitconfig"
    config.write_text(
        "[user]\n\tname = Fixture User\n\temail = fixture@example.com\n"
        "[init]\n\tdefaultBranch = main\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


@pytest.fixture
def remote(tmp_path):
    return make_remote(tmp_path)


@pytest.fixture
def repos(tmp_path, remote):
    return GitHubRepositories(
        token="test-token",
        api_url=API_URL,
        clone_base_url=remote.base_url,
        temp_dir=str(tmp_path / "work"),
    )
