"""Tests for pyproject.toml configuration loading.

The config module reads [tool.pytest-mockingbird] from pyproject.toml and
provides defaults when configuration is absent.
"""

import pytest

from pytest_mockingbird.config import MockingbirdConfig, load_config, merge_configs


@pytest.mark.small
class TestLoadConfig:
    """Tests for load_config function."""

    def test_returns_mockingbird_config_instance(self, tmp_path):
        """load_config returns a MockingbirdConfig object."""
        result = load_config(tmp_path)

        assert isinstance(result, MockingbirdConfig)

    def test_returns_defaults_when_no_pyproject_toml(self, tmp_path):
        """Returns default config when pyproject.toml does not exist."""
        result = load_config(tmp_path)

        assert result == MockingbirdConfig()

    def test_returns_defaults_when_no_tool_section(self, tmp_path):
        """Returns default config when [tool.pytest-mockingbird] is absent."""
        pyproject = tmp_path / 'pyproject.toml'
        pyproject.write_text('[project]\nname = "test"\n')

        result = load_config(tmp_path)

        assert result.enabled is None
        assert result.paths is None
        assert result.exclude is None
        assert result.autoreset is None

    def test_reads_all_config_options(self, tmp_path):
        """Reads all config options together."""
        pyproject = tmp_path / 'pyproject.toml'
        pyproject.write_text(
            '[tool.pytest-mockingbird]\n'
            'enabled = true\n'
            'paths = ["src", "lib"]\n'
            'exclude = ["*/migrations/*"]\n'
            'autoreset = true\n'
        )

        result = load_config(tmp_path)

        assert result.enabled is True
        assert result.paths == ['src', 'lib']
        assert result.exclude == ['*/migrations/*']
        assert result.autoreset is True

    def test_ignores_other_tool_sections(self, tmp_path):
        """Settings of other tools are not picked up."""
        pyproject = tmp_path / 'pyproject.toml'
        pyproject.write_text('[tool.other-plugin]\npaths = ["src"]\n')

        result = load_config(tmp_path)

        assert result.paths is None


@pytest.mark.small
class TestMergeConfigs:
    """Tests for merging CLI options over file configuration."""

    def test_file_values_are_kept_without_cli_options(self):
        file_config = MockingbirdConfig(enabled=True, paths=['src'], exclude=['*.pyi'], autoreset=True)

        result = merge_configs(file_config)

        assert result == file_config

    def test_cli_flags_switch_features_on(self):
        result = merge_configs(MockingbirdConfig(), cli_enabled=True, cli_autoreset=True)

        assert result.enabled is True
        assert result.autoreset is True

    def test_cli_flags_off_do_not_override_file(self):
        result = merge_configs(MockingbirdConfig(enabled=True, autoreset=True))

        assert result.enabled is True
        assert result.autoreset is True

    def test_cli_paths_override_file_paths(self):
        result = merge_configs(MockingbirdConfig(paths=['src']), cli_paths='lib, app ,')

        assert result.paths == ['lib', 'app']

    def test_blank_cli_paths_are_ignored(self):
        result = merge_configs(MockingbirdConfig(paths=['src']), cli_paths='  ')

        assert result.paths == ['src']
