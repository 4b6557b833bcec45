"""Tests for the outside-directory guard."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from donttouch.errors import InsideTargetError, TargetNotFoundError
from donttouch.safety.guard import assert_outside, is_inside


@pytest.fixture
def layout(temp_dir: Path):
    """parent/{target/sub, sibling}"""
    parent = temp_dir / "parent"
    (parent / "target" / "sub").mkdir(parents=True)
    (parent / "sibling").mkdir()
    return parent


class TestAssertOutside:
    """Tests for assert_outside."""

    def test_from_target_fails(self, layout: Path):
        with pytest.raises(InsideTargetError) as info:
            assert_outside(layout / "target", layout / "target")
        assert "OUTSIDE" in str(info.value)

    def test_from_descendant_fails(self, layout: Path):
        with pytest.raises(InsideTargetError):
            assert_outside(layout / "target" / "sub", layout / "target")

    def test_from_parent_passes(self, layout: Path):
        result = assert_outside(layout, layout / "target")
        assert result == (layout / "target").resolve()

    def test_from_sibling_passes(self, layout: Path):
        assert assert_outside(layout / "sibling", layout / "target")

    def test_relative_segments_resolved(self, layout: Path):
        sneaky = layout / "sibling" / ".." / "target" / "sub"
        with pytest.raises(InsideTargetError):
            assert_outside(sneaky, layout / "target")

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlink_into_target_fails(self, layout: Path):
        link = layout / "sibling" / "shortcut"
        link.symlink_to(layout / "target", target_is_directory=True)
        with pytest.raises(InsideTargetError):
            assert_outside(link, layout / "target")

    def test_missing_target(self, layout: Path):
        with pytest.raises(TargetNotFoundError):
            assert_outside(layout, layout / "nope")

    def test_target_is_a_file(self, layout: Path):
        (layout / "file.txt").write_text("x")
        with pytest.raises(TargetNotFoundError, match="not a directory"):
            assert_outside(layout, layout / "file.txt")


class TestIsInside:
    """Tests for is_inside."""

    def test_containment(self):
        root = Path("/a/b")
        assert is_inside(Path("/a/b"), root)
        assert is_inside(Path("/a/b/c/d"), root)
        assert not is_inside(Path("/a"), root)
        assert not is_inside(Path("/a/bc"), root)
