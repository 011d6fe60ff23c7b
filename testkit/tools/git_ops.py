"""Local git operations: working-copy staging and commit history introspection.

Every command goes through :func:`run_git`, which raises
:class:`~testkit.core.errors.CommandError` carrying the combined stdout/stderr
of the failing invocation.
"""

from pathlib import Path
from typing import List, Optional, Union
import git

from ..core.errors import ChangeSetError, CommandError, CommandOutputError, PreconditionError
from ..core.logging import get_logger
from ..models.change import Base, ChangeSet, CommitFound, File, Head, check_content_sources
from .repo_io import safe_join

logger = get_logger(__name__)

# Never block on a credential prompt
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


def run_git(local: Optional[str], *args: str, binary: bool = False) -> Union[str, bytes]:
    """Run git with the given arguments.

    Args:
        local: Working directory (None for the process cwd)
        args: git subcommand and arguments
        binary: Return stdout as raw bytes

    Returns:
        stdout, unstripped

    Raises:
        CommandError: If git exits non-zero or cannot be started
    """
    command = ["git", *args]
    try:
        status, stdout, stderr = git.Git(local).execute(
            command,
            with_extended_output=True,
            with_exceptions=False,
            stdout_as_string=not binary,
            strip_newline_in_stdout=False,
            env=GIT_ENV,
        )
    except git.exc.GitCommandNotFound as e:
        raise CommandError(command, None, str(e)) from e

    if status != 0:
        out = stdout.decode("utf-8", "replace") if isinstance(stdout, bytes) else stdout
        raise CommandError(command, status, "\n".join(part for part in (out, stderr) if part))
    return stdout


def clone_into_new_branch(
    base: Base,
    local: str,
    branch: str,
    token: Optional[str] = None,
    clone_base_url: Optional[str] = None,
) -> None:
    """Clone base into local and check out a new branch at base.branch.

    Full refs (``refs/pull/<n>/head``) are not fetched by a plain clone, so
    they are fetched explicitly and the branch starts at FETCH_HEAD.
    """
    url = base.clone_url(token=token, base_url=clone_base_url)

    run_git(None, "clone", url, local)

    if base.branch.startswith("refs/"):
        run_git(local, "fetch", "origin", base.branch)
        run_git(local, "checkout", "-b", branch, "FETCH_HEAD")
    else:
        run_git(local, "checkout", "-b", branch, f"origin/{base.branch}")


def check_change_set(change_set: ChangeSet) -> None:
    """Reject files with zero or several content sources.

    Raises:
        ChangeSetError: On the first malformed file
    """
    for f in change_set.files:
        try:
            check_content_sources(f)
        except ValueError as e:
            raise ChangeSetError(str(e)) from e


def write_and_add_file(local: str, f: File) -> None:
    """Materialize one file in the working copy and stage it."""
    try:
        target = Path(safe_join(local, f.path))
    except ValueError as e:
        raise ChangeSetError(str(e)) from e

    existing = target.read_bytes() if target.is_file() else None

    try:
        content = f.resolve_content(existing)
    except ValueError as e:
        raise ChangeSetError(str(e)) from e
    except OSError as e:
        raise ChangeSetError(f"file {f.path!r}: unable to read content: {e}") from e

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)

    run_git(local, "add", "--", f.path)


def write_and_add_files(local: str, files: List[File]) -> None:
    for f in files:
        write_and_add_file(local, f)


def commit_rename_branch_and_push(local: str, change_set: ChangeSet, head: Head) -> None:
    """Commit the staged change-set, rename the branch to head.branch and push.

    Raises:
        PreconditionError: If head.branch is empty (checked after committing)
        CommandError: If any git step fails
    """
    if change_set.user_name:
        run_git(local, "config", "user.name", change_set.user_name)

    if change_set.user_email:
        run_git(local, "config", "user.email", change_set.user_email)

    run_git(local, "commit", "-m", change_set.effective_message())

    if not head.branch:
        raise PreconditionError("head branch must be set")

    run_git(local, "branch", "-m", head.branch)
    run_git(local, "push", "origin", head.branch)

    if head.tag:
        run_git(local, "tag", head.tag)
        run_git(local, "push", "origin", head.tag)

    logger.info(f"Pushed {len(change_set.files)} file(s) to {head.branch}"
                + (f" and tagged {head.tag}" if head.tag else ""))


def rev_parse(local: str, ref: str = "HEAD") -> str:
    return run_git(local, "rev-parse", ref).strip()


def find_commits(local: str, since_sha: str = "") -> List[CommitFound]:
    """Commits in since_sha..HEAD (or all of HEAD), newest first.

    Each commit carries its author and the content, as of that commit, of
    every file it added or modified. Deleted files are left out.
    """
    rev_range = f"{since_sha}..HEAD" if since_sha else "HEAD"

    # "<sha> <subject>" per line, newest to oldest
    log = run_git(local, "log", "--pretty=format:%H %s", rev_range)

    commits = []
    for line in log.splitlines():
        if not line.strip():
            continue
        sha, _, message = line.partition(" ")
        user_name, user_email, files = _commit_details(local, sha)
        commits.append(CommitFound(
            sha=sha,
            message=message,
            change_set=ChangeSet(
                files=files,
                message=message,
                user_name=user_name,
                user_email=user_email,
            ),
        ))
    return commits


def _commit_details(local: str, sha: str):
    author = run_git(local, "show", "-s", "--format=%an%n%ae", sha)
    user_name, _, user_email = author.rstrip("\n").partition("\n")

    # "<status>\t<path>" per line, e.g. "M\tkubectl.go"
    name_statuses = run_git(local, "-c", "core.quotepath=off", "show", "--pretty=format:", "--name-status", sha)

    files = []
    for entry in name_statuses.splitlines():
        if not entry.strip():
            continue
        status, sep, path = entry.partition("\t")
        if not sep:
            raise CommandOutputError(f"unexpected name-status line in commit {sha}", entry)

        if status in ("A", "M"):
            files.append(_file_at_commit(local, sha, path))
        elif status == "D":
            continue
        else:
            raise CommandOutputError(f"unknown status {status!r} for {path} in commit {sha}", name_statuses)

    return user_name, user_email, files


def _file_at_commit(local: str, sha: str, path: str) -> File:
    content = run_git(local, "show", f"{sha}:{path}", binary=True)
    try:
        return File(path=path, content_string=content.decode("utf-8"))
    except UnicodeDecodeError:
        return File(path=path, content_bytes=content)

