"""Integration tests for the pytest-mockingbird plugin.

These tests verify the end-to-end plugin behavior using pytester.
"""

from __future__ import annotations

import pytest


TARGET_MODULE = """
from typing import Final

from pytest_mockingbird import Mockingbird

mockingbird: Mockingbird

RETRIES: Final = 3


def fetch(url):
    return f'real:{url}'


def refresh():
    return [fetch('a') for _ in range(RETRIES)]
"""


@pytest.fixture
def pytester_with_target(pytester: pytest.Pytester) -> pytest.Pytester:
    """Create a pytester instance holding an opted-in module."""
    pytester.makepyfile(target_module=TARGET_MODULE)
    return pytester


@pytest.mark.medium
class TestPluginBasicFunctionality:
    """Test basic plugin functionality."""

    def test_mockingbird_flag_transforms_opted_in_module(self, pytester_with_target: pytest.Pytester):
        """Verify that --mockingbird installs a registry in opted-in modules."""
        pytester_with_target.makepyfile(
            test_target="""
import target_module

def test_fetch_is_mocked():
    target_module.mockingbird.mock('fetch', lambda url: 'fake')
    assert target_module.refresh() == ['fake', 'fake', 'fake']
    target_module.mockingbird.unmock('fetch')
    assert target_module.refresh() == ['real:a', 'real:a', 'real:a']

def test_constant_is_mocked():
    target_module.mockingbird.mock('RETRIES', 1)
    assert target_module.refresh() == ['real:a']
    target_module.mockingbird.unmock('RETRIES')
"""
        )

        result = pytester_with_target.runpytest('--mockingbird', '-v')

        result.assert_outcomes(passed=2)

    def test_no_transformation_without_flag(self, pytester_with_target: pytest.Pytester):
        """Verify that modules import untouched when the plugin is not enabled."""
        pytester_with_target.makepyfile(
            test_target="""
import target_module

def test_module_has_no_registry():
    assert not hasattr(target_module, 'mockingbird')
"""
        )

        result = pytester_with_target.runpytest('-v')

        result.assert_outcomes(passed=1)

    def test_pyproject_enables_plugin(self, pytester_with_target: pytest.Pytester):
        """Verify that enabled = true in pyproject.toml installs the hook."""
        pytester_with_target.makepyprojecttoml(
            """
[tool.pytest-mockingbird]
enabled = true
"""
        )
        pytester_with_target.makepyfile(
            test_target="""
import target_module
from pytest_mockingbird import Mockingbird

def test_module_has_registry():
    assert isinstance(target_module.mockingbird, Mockingbird)
"""
        )

        result = pytester_with_target.runpytest('-v')

        result.assert_outcomes(passed=1)

    def test_paths_limit_transformation(self, pytester_with_target: pytest.Pytester):
        """Verify that modules outside --mockingbird-paths are left alone."""
        pytester_with_target.mkdir('lib')
        pytester_with_target.makepyfile(
            test_target="""
import target_module

def test_module_outside_paths_has_no_registry():
    assert not hasattr(target_module, 'mockingbird')
"""
        )

        result = pytester_with_target.runpytest('--mockingbird', '--mockingbird-paths=lib', '-v')

        result.assert_outcomes(passed=1)


@pytest.mark.medium
class TestPluginCleanup:
    """Test the cleanup the plugin offers between tests."""

    LEAKY_TESTS = """
import target_module

def test_leaves_fetch_mocked():
    target_module.mockingbird.mock('fetch', lambda url: 'fake')
    assert target_module.fetch('a') == 'fake'

def test_sees_real_fetch():
    assert target_module.fetch('a') == 'real:a'
"""

    def test_autoreset_unmocks_after_each_test(self, pytester_with_target: pytest.Pytester):
        """Verify that --mockingbird-autoreset undoes mocks a test left behind."""
        pytester_with_target.makepyfile(test_target=self.LEAKY_TESTS)

        result = pytester_with_target.runpytest('--mockingbird', '--mockingbird-autoreset', '-v')

        result.assert_outcomes(passed=2)

    def test_mocks_leak_without_autoreset(self, pytester_with_target: pytest.Pytester):
        """Verify that mocks persist across tests when autoreset is off."""
        pytester_with_target.makepyfile(test_target=self.LEAKY_TESTS)

        result = pytester_with_target.runpytest('--mockingbird', '-v')

        result.assert_outcomes(passed=1, failed=1)

    def test_mockingbirds_fixture_cleans_up(self, pytester_with_target: pytest.Pytester):
        """Verify that the mockingbirds fixture unmocks and restores after the test."""
        pytester_with_target.makepyfile(
            test_target="""
import target_module

def test_uses_fixture(mockingbirds):
    registry = mockingbirds(target_module)
    assert registry is target_module.mockingbird
    registry.mock('fetch', lambda url: 'fake')
    registry.save('RETRIES')
    registry.mock('RETRIES', 0)

def test_sees_real_values():
    assert target_module.fetch('a') == 'real:a'
    assert target_module.RETRIES == 3
"""
        )

        result = pytester_with_target.runpytest('--mockingbird', '-v')

        result.assert_outcomes(passed=2)
