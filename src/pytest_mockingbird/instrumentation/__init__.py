"""Instrumentation that makes module-level bindings mockable.

A module opts in by declaring a top-level ``mockingbird`` binding. The
transform then drops ``Final`` from its top-level declarations and replaces
the marker with a registry that can mock, save and restore every binding.

Example usage:
    >>> source = '''
    ... mockingbird = None
    ... LIMIT: Final = 10
    ... count = 0
    ... '''
    >>> print(transform_source(source))  # doctest: +NORMALIZE_WHITESPACE
    mockingbird = __import__('pytest_mockingbird.registry', fromlist=['Mockingbird']).Mockingbird(['LIMIT', 'count'], ['count'], globals())
    LIMIT = 10
    count = 0

A ``# mockingbird-ignore`` comment anywhere in the module turns the
transform off.
"""

from __future__ import annotations

from pytest_mockingbird.instrumentation.markers import IGNORE_TOKEN, OPT_IN_NAME, should_transform
from pytest_mockingbird.instrumentation.scope import Binding, BindingKind, collect_module_scope
from pytest_mockingbird.instrumentation.transformer import TransformResult, transform_source, transform_tree


__all__ = [
    'IGNORE_TOKEN',
    'OPT_IN_NAME',
    'Binding',
    'BindingKind',
    'TransformResult',
    'collect_module_scope',
    'should_transform',
    'transform_source',
    'transform_tree',
]
