"""
Git operations used by the reconciler.

The reconciler only needs four operations from version control, described
by the VcsClient protocol. GitClient implements them by running the git
binary synchronously, one command at a time.

Commands are passed to subprocess as argument lists (never through a
shell). URLs and commits are still screened for shell metacharacters before
use.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from revenant.core.validator import reject_shell_metacharacters
from revenant.lib.errors import IoError, ValidationError, VcsError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120


class VcsClient(Protocol):
    """What the reconciler needs from version control."""

    def clone(self, url: str, path: str) -> None: ...

    def checkout(self, path: str, revision: str) -> None: ...

    def current_revision(self, path: str) -> str: ...

    def fetch(self, path: str) -> None: ...


class GitClient:
    """VcsClient backed by the git command line."""

    def __init__(self, executable: str = "git", timeout: int = DEFAULT_TIMEOUT):
        self.executable = executable
        self.timeout = timeout

    def _run(self, args: list[str], operation: str, failure: str, cwd: Optional[str] = None) -> str:
        """Run one git command. Returns stdout; raises VcsError on any failure."""
        cmd = [self.executable, *args]
        logger.debug(f"Running: {' '.join(cmd)}" + (f" (in {cwd})" if cwd else ""))

        # Never block on a credential prompt (GitHub asks for one on unknown repos)
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise VcsError(f"{failure}: timed out after {self.timeout}s", operation=operation)
        except FileNotFoundError:
            raise VcsError(
                f"{failure}: git executable '{self.executable}' not found",
                operation=operation,
            )
        except OSError as e:
            raise VcsError(f"{failure}: {e}", operation=operation)

        if result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            raise VcsError(
                f"{failure}: {stderr or f'git exited with status {result.returncode}'}",
                operation=operation,
                stderr=stderr,
            )
        return result.stdout

    def _screen(self, value: str, operation: str, failure: str) -> None:
        try:
            reject_shell_metacharacters(value)
        except ValidationError as e:
            raise VcsError(f"{failure}: {e}", operation=operation) from e

    def clone(self, url: str, path: str) -> None:
        """Clone ``url`` into ``path`` (which must not exist yet)."""
        self._screen(url, "clone", f"Failed to clone {url}")
        parent = Path(path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoError(f"Failed to create {parent}: {e}", path=str(parent)) from e
        self._run(
            ["clone", "--quiet", "--", url, path],
            operation="clone",
            failure=f"Failed to clone {url}",
        )

    def checkout(self, path: str, revision: str) -> None:
        """Check out ``revision`` (detached HEAD) in the repository at ``path``."""
        self._screen(revision, "checkout", f"Failed to checkout commit {revision}")
        self._run(
            ["checkout", "--quiet", revision],
            operation="checkout",
            failure=f"Failed to checkout commit {revision}",
            cwd=path,
        )

    def current_revision(self, path: str) -> str:
        """Full hash of HEAD in the repository at ``path``."""
        # rev-parse would happily answer for an enclosing repository
        if not (Path(path) / ".git").exists():
            raise VcsError(
                f"Failed to get current commit: {path} is not a git repository",
                operation="rev-parse",
            )
        output = self._run(
            ["rev-parse", "HEAD"],
            operation="rev-parse",
            failure="Failed to get current commit",
            cwd=path,
        )
        return output.strip()

    def fetch(self, path: str) -> None:
        """Fetch all remotes so newer commits become reachable for checkout."""
        self._run(
            ["fetch", "--quiet", "--all"],
            operation="fetch",
            failure="Failed to fetch updates",
            cwd=path,
        )
