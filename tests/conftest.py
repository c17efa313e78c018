"""Shared pytest configuration and fixtures for pytest-mockingbird tests."""

from __future__ import annotations

import sys
import textwrap
from typing import TYPE_CHECKING

import pytest

from pytest_mockingbird.instrumentation.import_hooks import register_import_hooks, unregister_import_hooks


if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path


@pytest.fixture
def clean_meta_path() -> Generator[None, None, None]:
    """Ensure sys.meta_path is cleaned up after tests."""
    original_meta_path = sys.meta_path.copy()
    yield
    sys.meta_path[:] = original_meta_path


@pytest.fixture
def make_package(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[Callable[[str, dict[str, str]], Path], None, None]:
    """Write a package under tmp_path and make it importable.

    The returned callable takes a package name and a mapping of file names
    (relative to the package directory) to source text. Modules imported
    from the package are dropped from sys.modules afterwards.
    """
    monkeypatch.syspath_prepend(str(tmp_path))
    created: list[str] = []

    def _make(name: str, files: dict[str, str]) -> Path:
        package_dir = tmp_path / name
        package_dir.mkdir()
        files = {'__init__.py': '', **files}
        for file_name, source in files.items():
            (package_dir / file_name).write_text(textwrap.dedent(source))
        created.append(name)
        return package_dir

    yield _make

    for name in created:
        for module_name in list(sys.modules):
            if module_name == name or module_name.startswith(f'{name}.'):
                del sys.modules[module_name]


@pytest.fixture
def mockingbird_hook(tmp_path: Path, clean_meta_path: None) -> Generator[None, None, None]:  # noqa: ARG001
    """Register the import hook for modules under tmp_path."""
    register_import_hooks([tmp_path])
    yield
    unregister_import_hooks()
