"""
Low-level git subprocess runner.

All git invocations of the versioning engine go through run_git_command so
that every call has a working directory, a timeout, a non-interactive
environment and credential-free debug logging.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from ..server.logging_utils import redact_credentials

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds for local git operations


def build_git_env(
    read_only: bool = False, extra: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """
    Build the environment for a git subprocess.

    - GIT_TERMINAL_PROMPT=0: never block waiting for a username/password
    - LC_ALL=C: stable, English stderr for error classification
    - GIT_OPTIONAL_LOCKS=0 (read_only): status/log skip index.lock refreshes
      so they never contend with an in-flight writer
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["LC_ALL"] = "C"
    env["LANG"] = "C"
    if read_only:
        env["GIT_OPTIONAL_LOCKS"] = "0"
    if extra:
        env.update(extra)
    return env


def run_git_command(
    cmd: List[str],
    cwd: Path,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    check: bool = True,
    env: Optional[Dict[str, str]] = None,
    read_only: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a git command and capture its output.

    Args:
        cmd: Full command including the "git" executable
        cwd: Working directory (the repository working tree)
        timeout: Seconds before the process is killed
        check: Raise CalledProcessError on non-zero exit
        env: Extra environment variables layered over build_git_env()
        read_only: Whether the command only reads repository state

    Returns:
        CompletedProcess with text stdout/stderr

    Raises:
        subprocess.CalledProcessError: If check is True and git exits non-zero
        subprocess.TimeoutExpired: If the command exceeds timeout
        FileNotFoundError: If the git executable is not installed
    """
    logger.debug(
        f"Running git command: {redact_credentials(' '.join(cmd))} (cwd={cwd})"
    )
    return subprocess.run(
        cmd,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout,
        check=check,
        env=build_git_env(read_only=read_only, extra=env),
    )
