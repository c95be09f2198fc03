"""Tests for the transfer engine."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from gitsyncbackup.sync.transfer import TransferEngine, copy_file, copy_tree
from gitsyncbackup.sync.types import (
    Direction,
    HardlinkFailedError,
    InvalidHardlinkTargetError,
    PlannedAction,
    SourceMissingError,
    TransferError,
    TransferStatus,
)


def make_action(
    repo_path: Path,
    local_path: Path,
    direction: Direction,
    is_hardlink: bool = False,
) -> PlannedAction:
    return PlannedAction(
        path_in_repo=repo_path.name,
        repo_path=repo_path,
        local_path=local_path,
        is_hardlink=is_hardlink,
        direction=direction,
    )


@pytest.fixture
def engine() -> TransferEngine:
    return TransferEngine()


class TestCopyHelpers:
    """Tests for copy_file and copy_tree."""

    def test_copy_file_creates_parents(self, tmp_path: Path) -> None:
        """Should create missing parent directories."""
        src = tmp_path / "src.txt"
        src.write_text("hello")
        dst = tmp_path / "a" / "b" / "dst.txt"

        assert copy_file(src, dst)
        assert dst.read_text() == "hello"

    def test_copy_file_skips_identical(self, tmp_path: Path) -> None:
        """Should not rewrite a destination with equal content."""
        src = tmp_path / "src.txt"
        src.write_text("same")
        dst = tmp_path / "dst.txt"
        dst.write_text("same")

        assert not copy_file(src, dst)

    def test_copy_file_does_not_write_through_hardlink(self, tmp_path: Path) -> None:
        """Should replace the destination instead of modifying its other links."""
        src = tmp_path / "src.txt"
        src.write_text("new")
        dst = tmp_path / "dst.txt"
        dst.write_text("old")
        other_link = tmp_path / "other.txt"
        os.link(dst, other_link)

        assert copy_file(src, dst)
        assert dst.read_text() == "new"
        assert other_link.read_text() == "old"

    def test_copy_tree_prune(self, tmp_path: Path) -> None:
        """Should remove stale destination entries only when pruning."""
        src = tmp_path / "src"
        (src / "sub").mkdir(parents=True)
        (src / "sub" / "keep.txt").write_text("k")
        dst = tmp_path / "dst"
        (dst / "sub").mkdir(parents=True)
        (dst / "sub" / "stale.txt").write_text("s")

        copy_tree(src, dst, prune=False)
        assert (dst / "sub" / "stale.txt").exists()

        copy_tree(src, dst, prune=True)
        assert not (dst / "sub" / "stale.txt").exists()
        assert (dst / "sub" / "keep.txt").read_text() == "k"

    def test_copy_tree_preserves_symlinks(self, tmp_path: Path) -> None:
        """Should recreate symlinks instead of following them."""
        src = tmp_path / "src"
        src.mkdir()
        os.symlink("target-that-does-not-exist", src / "link")
        dst = tmp_path / "dst"

        assert copy_tree(src, dst, prune=True)
        assert (dst / "link").is_symlink()
        assert os.readlink(dst / "link") == "target-that-does-not-exist"
        assert not copy_tree(src, dst, prune=True)


class TestCopyTransfers:
    """Tests for plain (non-hardlink) transfers."""

    def test_collect_file(self, engine: TransferEngine, repo_root: Path, local_root: Path) -> None:
        """Should copy the local file into the repository."""
        local = local_root / ".bashrc"
        local.write_text("export A=1")
        action = make_action(repo_root / "bashrc", local, Direction.COLLECT)

        assert engine.execute(action) is TransferStatus.COPIED
        assert (repo_root / "bashrc").read_text() == "export A=1"

    def test_collect_directory_prunes_repository(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should mirror a directory into the repository, deleting removed files."""
        local = local_root / "nvim"
        local.mkdir()
        (local / "init.lua").write_text("vim")
        repo = repo_root / "nvim"
        repo.mkdir()
        (repo / "old.lua").write_text("gone")

        assert engine.execute(make_action(repo, local, Direction.COLLECT)) is TransferStatus.COPIED
        assert sorted(p.name for p in repo.iterdir()) == ["init.lua"]

    def test_restore_directory_keeps_local_extras(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should not delete local files that are absent from the repository."""
        repo = repo_root / "nvim"
        repo.mkdir()
        (repo / "init.lua").write_text("vim")
        local = local_root / "nvim"
        local.mkdir()
        (local / "local-only.lua").write_text("mine")

        engine.execute(make_action(repo, local, Direction.RESTORE))
        assert (local / "init.lua").read_text() == "vim"
        assert (local / "local-only.lua").read_text() == "mine"

    def test_second_run_unchanged(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should report UNCHANGED when repeating a transfer."""
        repo = repo_root / "dir"
        (repo / "nested").mkdir(parents=True)
        (repo / "nested" / "f").write_text("x")
        action = make_action(repo, local_root / "dir", Direction.RESTORE)

        assert engine.execute(action) is TransferStatus.COPIED
        mtime = (local_root / "dir" / "nested" / "f").stat().st_mtime_ns
        assert engine.execute(action) is TransferStatus.UNCHANGED
        assert (local_root / "dir" / "nested" / "f").stat().st_mtime_ns == mtime

    def test_collect_then_restore_round_trip(
        self, engine: TransferEngine, repo_root: Path, local_root: Path, tmp_path: Path
    ) -> None:
        """Should reproduce a collected tree on another device's path."""
        local = local_root / "conf"
        (local / "a").mkdir(parents=True)
        (local / "a" / "x.toml").write_text("k = 1")
        (local / "top").write_bytes(b"\x00\x01")
        other = tmp_path / "other-device" / "conf"

        engine.execute(make_action(repo_root / "conf", local, Direction.COLLECT))
        engine.execute(make_action(repo_root / "conf", other, Direction.RESTORE))

        assert (other / "a" / "x.toml").read_text() == "k = 1"
        assert (other / "top").read_bytes() == b"\x00\x01"

    def test_replaces_file_with_directory(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should replace a destination of the wrong kind."""
        repo = repo_root / "item"
        repo.mkdir()
        (repo / "f").write_text("x")
        local = local_root / "item"
        local.write_text("was a file")

        assert engine.execute(make_action(repo, local, Direction.RESTORE)) is TransferStatus.COPIED
        assert (local / "f").read_text() == "x"

    def test_symlinked_local_file_kept(
        self, engine: TransferEngine, repo_root: Path, local_root: Path, tmp_path: Path
    ) -> None:
        """Should restore into the target of a symlinked local path."""
        real = tmp_path / "dotfiles" / "bashrc"
        real.parent.mkdir()
        real.write_text("export A=1")
        local = local_root / ".bashrc"
        local.symlink_to(real)
        repo = repo_root / "bashrc"

        engine.execute(make_action(repo, local, Direction.COLLECT))
        assert engine.execute(make_action(repo, local, Direction.RESTORE)) is TransferStatus.UNCHANGED
        assert local.is_symlink()

        repo.write_text("export A=2")
        assert engine.execute(make_action(repo, local, Direction.RESTORE)) is TransferStatus.COPIED
        assert local.is_symlink()
        assert real.read_text() == "export A=2"

    def test_symlinked_local_directory_kept(
        self, engine: TransferEngine, repo_root: Path, local_root: Path, tmp_path: Path
    ) -> None:
        """Should restore a directory item through a symlinked local path."""
        real = tmp_path / "dotfiles" / "nvim"
        real.mkdir(parents=True)
        (real / "init.lua").write_text("old")
        local = local_root / "nvim"
        local.symlink_to(real, target_is_directory=True)
        repo = repo_root / "nvim"

        engine.execute(make_action(repo, local, Direction.COLLECT))
        (repo / "init.lua").write_text("new")
        engine.execute(make_action(repo, local, Direction.RESTORE))

        assert local.is_symlink()
        assert (real / "init.lua").read_text() == "new"

    @pytest.mark.parametrize("direction", list(Direction))
    def test_missing_source(
        self, engine: TransferEngine, repo_root: Path, local_root: Path, direction: Direction
    ) -> None:
        """Should raise SourceMissingError when the copied-from side is absent."""
        action = make_action(repo_root / "x", local_root / "x", direction)
        with pytest.raises(SourceMissingError):
            engine.execute(action)

    def test_run_captures_failure(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should turn a TransferError into a FAILED result."""
        result = engine.run(make_action(repo_root / "x", local_root / "x", Direction.COLLECT))
        assert result.status is TransferStatus.FAILED
        assert isinstance(result.error, SourceMissingError)
        assert not result.success


class TestHardlinkTransfers:
    """Tests for hardlink items."""

    def test_restore_links_file(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should make the local path the same file as the repository copy."""
        repo = repo_root / "bashrc"
        repo.write_text("x")
        local = local_root / ".bashrc"
        local.write_text("old")
        action = make_action(repo, local, Direction.RESTORE, is_hardlink=True)

        assert engine.execute(action) is TransferStatus.LINKED
        assert os.path.samefile(repo, local)
        assert local.read_text() == "x"
        assert not (local_root / "..bashrc.gsb-link").exists()

    def test_restore_twice_is_noop(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should leave an existing link alone."""
        repo = repo_root / "bashrc"
        repo.write_text("x")
        action = make_action(repo, local_root / ".bashrc", Direction.RESTORE, is_hardlink=True)

        engine.execute(action)
        assert engine.execute(action) is TransferStatus.UNCHANGED
        assert repo.stat().st_nlink == 2

    def test_collect_is_noop(self, engine: TransferEngine, repo_root: Path, local_root: Path) -> None:
        """Should not copy anything for a hardlink item on collect."""
        repo = repo_root / "bashrc"
        repo.write_text("repo")
        local = local_root / ".bashrc"
        local.write_text("local")
        action = make_action(repo, local, Direction.COLLECT, is_hardlink=True)

        assert engine.execute(action) is TransferStatus.UNCHANGED
        assert repo.read_text() == "repo"

    def test_directory_target_rejected(
        self, engine: TransferEngine, repo_root: Path, local_root: Path
    ) -> None:
        """Should refuse to hardlink a directory."""
        repo = repo_root / "dir"
        repo.mkdir()
        action = make_action(repo, local_root / "dir", Direction.RESTORE, is_hardlink=True)
        with pytest.raises(InvalidHardlinkTargetError):
            engine.execute(action)

    def test_link_failure(
        self,
        engine: TransferEngine,
        repo_root: Path,
        local_root: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Should raise HardlinkFailedError and keep the local file when linking fails."""
        repo = repo_root / "bashrc"
        repo.write_text("x")
        local = local_root / ".bashrc"
        local.write_text("keep")

        def fail_link(*args: object) -> None:
            raise OSError(18, "Invalid cross-device link")

        monkeypatch.setattr(os, "link", fail_link)
        action = make_action(repo, local, Direction.RESTORE, is_hardlink=True)
        with pytest.raises(HardlinkFailedError, match="cross-device"):
            engine.execute(action)
        assert local.read_text() == "keep"

    def test_replace_failure_removes_staging_file(
        self,
        engine: TransferEngine,
        repo_root: Path,
        local_root: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Should not leave the staging link behind when the final rename fails."""
        repo = repo_root / "bashrc"
        repo.write_text("x")
        local = local_root / ".bashrc"
        local.write_text("keep")

        def fail_replace(*args: object) -> None:
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(os, "replace", fail_replace)
        action = make_action(repo, local, Direction.RESTORE, is_hardlink=True)
        with pytest.raises(TransferError, match="Permission denied"):
            engine.execute(action)
        assert sorted(p.name for p in local_root.iterdir()) == [".bashrc"]
        assert local.read_text() == "keep"
