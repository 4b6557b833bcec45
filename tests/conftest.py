"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

import pytest

from donttouch.config import POLICY_FILENAME, Policy, render_policy


def file_mode(path: Path) -> int:
    """Permission bits of a file."""
    return stat.S_IMODE(path.stat().st_mode)


def write_policy(root: Path, patterns: list[str], enabled: bool = True) -> Path:
    path = root / POLICY_FILENAME
    path.write_text(render_policy(Policy(enabled=enabled, patterns=patterns)))
    return path


posix_only = pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        yield root
        # Locked files must be writable again for cleanup on some platforms
        for dirpath, _, filenames in os.walk(root):
            for name in filenames:
                path = Path(dirpath) / name
                if not path.is_symlink():
                    path.chmod(file_mode(path) | stat.S_IWUSR)


@pytest.fixture
def project(temp_dir: Path):
    """Create a protected project: `.env` (644) plus an unprotected notes file."""
    project = temp_dir / "project"
    project.mkdir()

    env = project / ".env"
    env.write_text("SECRET=1\n")
    env.chmod(0o644)

    (project / "notes.txt").write_text("todo\n")
    write_policy(project, [".env"])

    yield project


@pytest.fixture
def nested_project(temp_dir: Path):
    """Create a project with nested secrets and scripts."""
    project = temp_dir / "nested"
    (project / "secrets" / "deep").mkdir(parents=True)
    (project / "scripts").mkdir()
    (project / "src").mkdir()

    (project / "secrets" / "a.key").write_text("a")
    (project / "secrets" / "deep" / "b.key").write_text("b")
    deploy = project / "scripts" / "deploy.sh"
    deploy.write_text("#!/bin/sh\necho deploy\n")
    deploy.chmod(0o755)
    (project / "src" / "app.py").write_text("print('hi')\n")
    (project / "docker-compose.prod.yml").write_text("services: {}\n")

    write_policy(project, ["secrets", "scripts/*.sh", "*.prod.yml"])
    yield project
