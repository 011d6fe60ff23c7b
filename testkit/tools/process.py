"""Run external CLIs and surface their combined output on failure."""

import os
import shutil
import subprocess
from typing import Dict, List, Optional, Sequence

from ..core.errors import CommandError, PreconditionError
from ..core.logging import get_logger, redact_sensitive

logger = get_logger(__name__)


def find_binary(name: str) -> str:
    """Absolute path of an executable on PATH.

    Raises:
        PreconditionError: If the binary is not installed
    """
    path = shutil.which(name)
    if path is None:
        raise PreconditionError(f"unable to find {name} binary on PATH")
    return path


def capture(
    args: Sequence[str],
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    combined: bool = True,
) -> str:
    """Run a command and return its combined stdout/stderr.

    Args:
        args: Command and arguments
        cwd: Working directory
        env: Extra environment variables layered over os.environ
        combined: Merge stderr into the returned output. When False only
            stdout is returned, and stderr is still reported on failure.

    Returns:
        Combined output

    Raises:
        CommandError: On a non-zero exit or when the binary cannot be started
    """
    cmd: List[str] = [str(a) for a in args]
    full_env = None
    if env:
        full_env = {**os.environ, **env}

    logger.debug(f"Running {' '.join(redact_sensitive(cmd))}", extra={"command": " ".join(cmd)})
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combined else subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        raise CommandError(cmd, None, str(e)) from e

    if result.returncode != 0:
        output = result.stdout if combined else "\n".join(p for p in (result.stdout, result.stderr) if p)
        raise CommandError(cmd, result.returncode, output)
    return result.stdout
