"""Ephemeral working-copy storage for cloned repositories.

Each clone gets its own directory ``<root>/<owner>/<repo>/<NN>``. The index
increments per storage instance, and indexes whose directory already exists
(left behind by a retained clone or another process) are skipped.
"""

import pathlib
import shutil
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional

from ..core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ROOT_NAME = pathlib.Path("testkit") / "ghreposvc"


def default_root() -> pathlib.Path:
    return pathlib.Path(tempfile.gettempdir()) / DEFAULT_ROOT_NAME


class WorkingCopyStorage:
    """Allocates and releases working-copy directories."""

    def __init__(self, root_dir: Optional[str] = None, retain: bool = False):
        """Initialize working-copy storage.

        Args:
            root_dir: Root directory (default: <tmp>/testkit/ghreposvc)
            retain: Keep working copies after use, for debugging
        """
        self.root_dir = pathlib.Path(root_dir) if root_dir else default_root()
        self.retain = retain
        self._index = 0

    def allocate(self, owner: str, repo: str) -> pathlib.Path:
        """Reserve a fresh, not-yet-existing directory path for a clone.

        The parent directory is created; the leaf is left for git to create.
        """
        parent = self.root_dir / owner / repo
        parent.mkdir(parents=True, exist_ok=True)
        while True:
            self._index += 1
            candidate = parent / f"{self._index:02d}"
            if not candidate.exists():
                return candidate

    def release(self, path: pathlib.Path) -> None:
        """Remove a working copy. Failures are logged, never raised."""
        if self.retain:
            logger.info(f"Retaining working copy at {path}")
            return
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
            logger.debug(f"Cleaned up working copy: {path}")
        except OSError as e:
            logger.warning(f"Failed to cleanup working copy {path}: {e}")

    @contextmanager
    def working_copy(self, owner: str, repo: str) -> Iterator[pathlib.Path]:
        """Yield a fresh directory path and release it on every exit path."""
        path = self.allocate(owner, repo)
        try:
            yield path
        finally:
            self.release(path)
