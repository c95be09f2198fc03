"""Git repository access.

This module provides:
- GitRepository: The four git capabilities the sync engine depends on
  (init_or_open, fetch, fast_forward_or_merge, commit_all)
- GitTransportError: Any git failure

Git is driven through the ``git`` executable. Every GitRepository for the
same work tree shares one re-entrant lock so that a fetch or commit never
interleaves with an in-flight transfer batch.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path

from gitsyncbackup.core.types import GsbError

logger = logging.getLogger(__name__)

# Used when the user has no git identity configured
FALLBACK_USER_NAME = "gsb"
FALLBACK_USER_EMAIL = "gsb@localhost"

_locks: dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def repository_lock(path: Path) -> threading.RLock:
    """Get the process-wide lock of a work tree."""
    key = path.resolve()
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


class GitTransportError(GsbError):
    """A git command failed (fetch, merge, commit, ...)."""


class GitRepository:
    """A git work tree used as sync transport and storage.

    Usage:
        repo = GitRepository.init_or_open(path)
        with repo.lock:
            if repo.fetch("origin", "main"):
                repo.fast_forward_or_merge("main")
    """

    def __init__(self, path: Path, git_executable: str = "git") -> None:
        """Wrap an existing work tree (use init_or_open instead)."""
        self._path = path
        self._git = git_executable
        self._lock = repository_lock(path)

    @property
    def path(self) -> Path:
        """Get the work tree root."""
        return self._path

    @property
    def lock(self) -> threading.RLock:
        """Get the lock serializing git operations and transfers on this tree."""
        return self._lock

    @classmethod
    def init_or_open(
        cls,
        path: Path,
        initial_branch: str | None = None,
        git_executable: str = "git",
    ) -> GitRepository:
        """Open the work tree at path, running ``git init`` if there is none.

        A path inside an existing work tree opens that work tree rather than
        creating a nested repository.

        Args:
            path: Work tree root.
            initial_branch: Branch name for a newly initialized repository.
            git_executable: Git binary to run.

        Raises:
            GitTransportError: If git is missing or initialization fails.
        """
        repo = cls(path, git_executable)
        if (path / ".git").exists():
            return repo

        toplevel = repo._run("rev-parse", "--show-toplevel", check=False)
        if toplevel.returncode == 0 and toplevel.stdout.strip():
            logger.info(f"Using enclosing git repository at {toplevel.stdout.strip()}")
            return repo

        logger.info(f"Initializing git repository in {path}")
        args = ["init"]
        if initial_branch:
            args += ["-b", initial_branch]
        repo._run(*args)
        return repo

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        command = [self._git, *args]
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                cwd=self._path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise GitTransportError(f"Cannot run git: {e}") from e

        if check and result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise GitTransportError(f"git {args[0]} failed: {detail}")
        return result

    def _rev_parse(self, rev: str) -> str | None:
        result = self._run("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def _is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._run("merge-base", "--is-ancestor", ancestor, descendant, check=False)
        return result.returncode == 0

    def head(self) -> str | None:
        """Get the commit id of HEAD, or None on an unborn branch."""
        return self._rev_parse("HEAD")

    def current_branch(self) -> str | None:
        """Get the checked out branch name, or None when detached."""
        result = self._run("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def fetch(self, remote: str, branch: str) -> bool:
        """Fetch a branch from a remote into FETCH_HEAD.

        Args:
            remote: Remote name (e.g., "origin").
            branch: Branch to fetch.

        Returns:
            True if the fetched commit differs from HEAD.

        Raises:
            GitTransportError: If the remote is unreachable or the branch is unknown.
        """
        logger.info(f"Fetching from remote '{remote}'...")
        self._run("fetch", remote, branch)
        fetched = self._rev_parse("FETCH_HEAD")
        if fetched is None:
            raise GitTransportError(f"Nothing fetched for {remote}/{branch}")
        return fetched != self.head()

    def fast_forward_or_merge(self, branch: str) -> bool:
        """Bring the work tree up to FETCH_HEAD.

        Fast-forwards when possible and merges otherwise. A conflicting
        merge is aborted, leaving the tree as it was.

        Args:
            branch: Branch that must be checked out.

        Returns:
            False if already up to date, True if the tree changed.

        Raises:
            GitTransportError: On a branch mismatch or a merge conflict.
        """
        fetched = self._rev_parse("FETCH_HEAD")
        if fetched is None:
            raise GitTransportError("No FETCH_HEAD; fetch first")

        head = self.head()
        if head is None:
            logger.info(f"Checking out fetched '{branch}' into empty repository")
            self._run("checkout", "-B", branch, fetched)
            return True

        current = self.current_branch()
        if current != branch:
            raise GitTransportError(
                f"Work tree is on '{current or 'detached HEAD'}', expected '{branch}'"
            )

        if self._is_ancestor(fetched, head):
            logger.info("Already up-to-date.")
            return False

        if self._is_ancestor(head, fetched):
            logger.info("Fast-forwarding...")
            self._run("merge", "--ff-only", fetched)
            return True

        logger.info("Branches diverged, merging...")
        result = self._run(*self._identity_args(), "merge", "--no-edit", fetched, check=False)
        if result.returncode != 0:
            self._run("merge", "--abort", check=False)
            detail = (result.stdout or result.stderr).strip()
            raise GitTransportError(f"Merge failed and was aborted, merge manually: {detail}")
        return True

    def _identity_args(self) -> list[str]:
        configured = self._run("config", "user.email", check=False)
        if configured.returncode == 0 and configured.stdout.strip():
            return []
        return ["-c", f"user.name={FALLBACK_USER_NAME}", "-c", f"user.email={FALLBACK_USER_EMAIL}"]

    def commit_all(self, message: str) -> bool:
        """Stage every change in the work tree and commit it.

        Args:
            message: Commit message.

        Returns:
            True if a commit was created, False if there was nothing to commit.

        Raises:
            GitTransportError: If staging or committing fails.
        """
        self._run("add", "--all")
        if self.head() is not None:
            unchanged = self._run("diff", "--cached", "--quiet", check=False).returncode == 0
        else:
            unchanged = not self._run("ls-files").stdout.strip()
        if unchanged:
            logger.info("No changes to commit.")
            return False

        self._run(*self._identity_args(), "commit", "--quiet", "-m", message)
        logger.info(f"Committed changes with message: {message}")
        return True
