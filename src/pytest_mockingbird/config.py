"""Configuration loading for pytest-mockingbird.

This module reads configuration from pyproject.toml [tool.pytest-mockingbird]
section and provides sensible defaults when configuration is absent.
"""

from __future__ import annotations

from dataclasses import dataclass
import tomllib
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from pathlib import Path


@dataclass
class MockingbirdConfig:
    """Configuration for pytest-mockingbird.

    All fields are optional and default to None, meaning the plugin
    will use CLI defaults or built-in defaults.

    Attributes:
        enabled: Whether to install the import hook.
        paths: List of directories whose opted-in modules are transformed.
        exclude: List of glob patterns for files to leave untransformed.
        autoreset: Whether to unmock and restore every registry after each test.
    """

    enabled: bool | None = None
    paths: list[str] | None = None
    exclude: list[str] | None = None
    autoreset: bool | None = None


def load_config(rootdir: Path) -> MockingbirdConfig:
    """Load configuration from pyproject.toml.

    Reads the [tool.pytest-mockingbird] section from pyproject.toml in the
    given directory. Returns default configuration if the file or section
    does not exist.

    Args:
        rootdir: Directory containing pyproject.toml.

    Returns:
        MockingbirdConfig with values from pyproject.toml or defaults.
    """
    pyproject_path = rootdir / 'pyproject.toml'

    if not pyproject_path.exists():
        return MockingbirdConfig()

    with pyproject_path.open('rb') as f:
        data = tomllib.load(f)

    tool_config = data.get('tool', {}).get('pytest-mockingbird', {})

    return MockingbirdConfig(
        enabled=tool_config.get('enabled'),
        paths=tool_config.get('paths'),
        exclude=tool_config.get('exclude'),
        autoreset=tool_config.get('autoreset'),
    )


def merge_configs(
    file_config: MockingbirdConfig,
    cli_enabled: bool = False,
    cli_paths: str | None = None,
    cli_autoreset: bool = False,
) -> MockingbirdConfig:
    """Merge CLI arguments with file configuration.

    CLI arguments take precedence over pyproject.toml configuration.
    Flags can only switch features on; empty strings are treated as not
    provided.

    Args:
        file_config: Configuration loaded from pyproject.toml.
        cli_enabled: Value of --mockingbird.
        cli_paths: Comma-separated directories from CLI (--mockingbird-paths).
        cli_autoreset: Value of --mockingbird-autoreset.

    Returns:
        MockingbirdConfig with CLI values overriding file config where provided.
    """
    paths: list[str] | None = None
    if cli_paths and cli_paths.strip():
        paths = [p.strip() for p in cli_paths.split(',') if p.strip()]
    elif file_config.paths is not None:
        paths = file_config.paths

    return MockingbirdConfig(
        enabled=True if cli_enabled else file_config.enabled,
        paths=paths,
        exclude=file_config.exclude,
        autoreset=True if cli_autoreset else file_config.autoreset,
    )
