"""Repository file I/O confined to a working copy."""

import os
from pathlib import Path


def safe_join(root: str, rel: str) -> str:
    """Join paths safely, preventing path traversal attacks.

    Args:
        root: Root directory path
        rel: Relative path to join

    Returns:
        Absolute path inside root

    Raises:
        ValueError: If the resulting path is outside root
    """
    root_path = Path(root).resolve()
    try:
        # Handle both absolute and relative paths in rel
        if os.path.isabs(rel):
            rel = os.path.relpath(rel, root)

        full_path = (root_path / rel).resolve()

        # Ensure the resolved path is within root
        full_path.relative_to(root_path)
        return str(full_path)
    except ValueError:
        raise ValueError(f"Path traversal detected: {rel} outside {root}")


def read_file_bytes(root: str, rel: str) -> bytes:
    """Read a file inside root.

    Raises:
        ValueError: If the path escapes root
        FileNotFoundError: If the file does not exist
    """
    abs_path = safe_join(root, rel)
    with open(abs_path, "rb") as f:
        return f.read()
