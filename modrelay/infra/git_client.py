"""
Git client infrastructure for modrelay.

Provides a clean abstraction over the git commands the publish pipeline
needs:
- Locating the checkout root
- Reading the commit time of a tag or ref
- Exporting the tracked tree at a ref as a tar archive

All git operations go through this client so they are easy to mock.
"""

import subprocess
from typing import List, Optional, Tuple
import logging

from ..exit_codes import VcsUnavailable

logger = logging.getLogger(__name__)


class GitClient:
    """
    Abstraction over git commands.

    Example:
        client = GitClient()
        root = client.root_path("/path/to/checkout/submodule")
        when = client.commit_timestamp(root, "v1.2.0")
    """

    def __init__(self, timeout: int = 30, archive_timeout: int = 300):
        """
        Initialize GitClient.

        Args:
            timeout: Command timeout in seconds (default: 30)
            archive_timeout: Timeout for `git archive` in seconds (default: 300)
        """
        self.timeout = timeout
        self.archive_timeout = archive_timeout

    def _run(
        self,
        args: List[str],
        cwd: str,
        capture_stderr: bool = False
    ) -> Tuple[Optional[str], int]:
        """
        Run a git command.

        Args:
            args: Command arguments, starting with "git"
            cwd: Working directory
            capture_stderr: Include stderr in output

        Returns:
            Tuple of (stdout, returncode)
        """
        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Git command timed out: {' '.join(args)}")
            return None, -1
        except OSError as e:
            logger.error(f"Git command failed: {' '.join(args)} - {e}")
            return None, -1

        output = result.stdout
        if capture_stderr and result.stderr:
            output += result.stderr

        return output.strip() if output else None, result.returncode

    def root_path(self, cwd: str) -> str:
        """
        Get the top-level directory of the checkout containing ``cwd``.

        Raises:
            VcsUnavailable: ``cwd`` is not inside a git repository
        """
        output, code = self._run(["git", "rev-parse", "--show-toplevel"], cwd=cwd, capture_stderr=True)
        if code != 0 or not output:
            raise VcsUnavailable(f"Current directory is not in a Git repository: {output or cwd}")
        return output.splitlines()[0].strip()

    def commit_timestamp(self, cwd: str, ref: str) -> int:
        """
        Get the commit time (Unix seconds) of ``ref``.

        Annotated tags are peeled to the commit they point at.

        Raises:
            VcsUnavailable: the ref does not exist or git output is unusable
        """
        output, code = self._run(
            ["git", "log", "-1", "--format=%ct", f"{ref}^{{commit}}", "--"],
            cwd=cwd,
        )
        if code != 0 or not output:
            raise VcsUnavailable(f"Git revision not found: {ref}")
        try:
            return int(output.splitlines()[0].strip())
        except ValueError as e:
            raise VcsUnavailable(f"Unexpected commit time for {ref}: {output!r}") from e

    def archive(self, root: str, ref: str) -> bytes:
        """
        Export the tracked tree at ``ref`` as an uncompressed tar archive.

        Raises:
            VcsUnavailable: git failed or timed out
        """
        args = ["git", "archive", "--format=tar", f"{ref}^{{tree}}"]
        try:
            result = subprocess.run(
                args,
                cwd=root,
                capture_output=True,
                timeout=self.archive_timeout
            )
        except subprocess.TimeoutExpired as e:
            raise VcsUnavailable(f"Git archive timed out: {ref}") from e
        except OSError as e:
            raise VcsUnavailable(f"Git archive failed: {ref}: {e}") from e

        if result.returncode != 0:
            message = result.stderr.decode('utf-8', errors='replace').strip()
            raise VcsUnavailable(f"Git archive failed: {ref}: {message}")
        return result.stdout
