"""pytest plugin for mockable module bindings.

This module provides the pytest plugin hooks that install the mockingbird
import hook, so modules under test that declare ``mockingbird`` get a
binding registry, and that clean registries up between tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pytest_mockingbird.config import load_config, merge_configs
from pytest_mockingbird.instrumentation.import_hooks import register_import_hooks, unregister_import_hooks
from pytest_mockingbird.registry import registry_for, unmock_everything


if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    import types

    from pytest_mockingbird.registry import Mockingbird


logger = logging.getLogger(__name__)


@dataclass
class MockingbirdSession:
    """Resolved plugin settings for one pytest run.

    Attributes:
        enabled: Whether the import hook is installed.
        paths: Absolute directories whose opted-in modules are transformed.
        exclude: Glob patterns for files left untransformed.
        autoreset: Whether every registry is unmocked and restored after each test.
    """

    enabled: bool = False
    paths: list[Path] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    autoreset: bool = False


_mockingbird_session: MockingbirdSession | None = None


def _get_session() -> MockingbirdSession | None:
    return _mockingbird_session


def _set_session(session: MockingbirdSession | None) -> None:
    global _mockingbird_session  # noqa: PLW0603
    _mockingbird_session = session


def _resolve_paths(rootdir: Path, paths: list[str] | None) -> list[Path]:
    """Resolve configured paths against rootdir; default to rootdir itself."""
    if not paths:
        return [rootdir]
    return [path if path.is_absolute() else rootdir / path for path in map(Path, paths)]


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add command-line options for pytest-mockingbird."""
    group = parser.getgroup('mockingbird', 'mockable module bindings')
    group.addoption(
        '--mockingbird',
        action='store_true',
        default=False,
        dest='mockingbird',
        help='Transform modules that declare a top-level "mockingbird" so their bindings can be mocked',
    )
    group.addoption(
        '--mockingbird-paths',
        action='store',
        default=None,
        dest='mockingbird_paths',
        help='Comma-separated directories whose modules may be transformed (default: rootdir)',
    )
    group.addoption(
        '--mockingbird-autoreset',
        action='store_true',
        default=False,
        dest='mockingbird_autoreset',
        help='Unmock and restore every mockingbird registry after each test',
    )


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest-mockingbird from pyproject.toml and command-line options."""
    rootdir = Path(config.rootdir)
    file_config = load_config(rootdir)
    merged = merge_configs(
        file_config,
        cli_enabled=config.option.mockingbird,
        cli_paths=config.option.mockingbird_paths,
        cli_autoreset=config.option.mockingbird_autoreset,
    )

    session = MockingbirdSession(
        enabled=bool(merged.enabled),
        paths=_resolve_paths(rootdir, merged.paths),
        exclude=list(merged.exclude or []),
        autoreset=bool(merged.autoreset),
    )
    _set_session(session)

    if session.enabled:
        register_import_hooks(session.paths, session.exclude)
        logger.debug('Mockingbird import hook registered for %s', ', '.join(map(str, session.paths)))


def pytest_unconfigure(config: pytest.Config) -> None:  # noqa: ARG001
    """Remove the import hook installed by pytest_configure."""
    session = _get_session()
    if session is not None and session.enabled:
        unregister_import_hooks()
    _set_session(None)


@pytest.hookimpl(trylast=True)
def pytest_runtest_teardown(item: pytest.Item, nextitem: pytest.Item | None) -> None:  # noqa: ARG001
    """Undo every mock and saved value after each test when autoreset is on."""
    session = _get_session()
    if session is not None and session.autoreset:
        unmock_everything()


@pytest.fixture
def mockingbirds() -> Generator[Callable[[types.ModuleType], Mockingbird], None, None]:
    """Look up the registry of a transformed module.

    Every registry is unmocked and restored when the test finishes::

        def test_refresh(mockingbirds):
            from mypackage import core

            mockingbirds(core).mock('fetch', lambda: {'ok': True})
            assert core.refresh() == {'ok': True}
    """
    yield registry_for
    unmock_everything()
