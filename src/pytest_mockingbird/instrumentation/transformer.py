"""AST transformer that makes module-level bindings mockable.

This module rewrites an opted-in module so that test code can replace its
top-level bindings at run time:

1. Top-level ``Final`` declarations lose their ``Final`` qualifier.
2. The ``mockingbird`` marker declaration is replaced by a registry bound to
   the module's globals and populated with the module's binding names.

Modules that do not opt in, or that carry the ignore token, are returned
unchanged.
"""

# mockingbird-ignore

from __future__ import annotations

import ast
import copy
from dataclasses import dataclass
import logging
import re
from typing import TYPE_CHECKING

from pytest_mockingbird.instrumentation.markers import OPT_IN_NAME, should_transform
from pytest_mockingbird.instrumentation.scope import collect_module_scope, is_final_annotation


if TYPE_CHECKING:
    from collections.abc import Sequence


logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r'^__[_A-Z0-9]+__$')

MOCKINGBIRD_TEMPLATE = """\
mockingbird = __import__('pytest_mockingbird.registry', fromlist=['Mockingbird']).Mockingbird(
    __BINDINGS__,
    __MUTABLES__,
    globals(),
)
"""


@dataclass(frozen=True)
class TransformResult:
    """Outcome of running the transform over one module.

    Attributes:
        transformed: Whether the module opted in and was rewritten.
        injected: Whether the marker declaration was replaced by a registry.
        bindings: Module-scope names captured for the registry.
        mutables: The reassignable subset of ``bindings``.
        tree: The (possibly rewritten) module AST.
    """

    transformed: bool
    injected: bool
    bindings: tuple[str, ...]
    mutables: tuple[str, ...]
    tree: ast.Module


class _PlaceholderReplacer(ast.NodeTransformer):
    """Substitutes ``__NAME__`` placeholders in a parsed template."""

    def __init__(self, substitutions: dict[str, ast.expr]) -> None:
        self.substitutions = substitutions

    def visit_Name(self, node: ast.Name) -> ast.expr:
        if PLACEHOLDER_PATTERN.match(node.id) and node.id in self.substitutions:
            return copy.deepcopy(self.substitutions[node.id])
        return node


def _string_list(names: Sequence[str]) -> ast.List:
    return ast.List(elts=[ast.Constant(value=name) for name in names], ctx=ast.Load())


def build_mockingbird(bindings: Sequence[str], mutables: Sequence[str]) -> ast.Assign:
    """Build the registry declaration that replaces the marker.

    Args:
        bindings: Names of every module-scope binding except the marker.
        mutables: The reassignable subset of ``bindings``.

    Returns:
        An ``mockingbird = Mockingbird([...], [...], globals())`` statement.

    Example:
        >>> stmt = build_mockingbird(['one', 'two'], ['two'])
        >>> [elt.value for elt in stmt.value.args[1].elts]
        ['two']
    """
    template = ast.parse(MOCKINGBIRD_TEMPLATE)
    replacer = _PlaceholderReplacer({'__BINDINGS__': _string_list(bindings), '__MUTABLES__': _string_list(mutables)})
    tree = replacer.visit(template)
    statement = tree.body[0]
    if not isinstance(statement, ast.Assign):
        raise TypeError(f'Expected ast.Assign, got {type(statement).__name__}')
    return statement


def is_marker_declaration(node: ast.stmt) -> bool:
    """Return True if the statement declares the ``mockingbird`` marker."""
    if isinstance(node, ast.Assign):
        return len(node.targets) == 1 and isinstance(node.targets[0], ast.Name) and node.targets[0].id == OPT_IN_NAME
    if isinstance(node, ast.AnnAssign):
        return isinstance(node.target, ast.Name) and node.target.id == OPT_IN_NAME
    return False


def _unwrap_final(annotation: ast.expr) -> ast.expr | None:
    """Return the type inside ``Final[T]``, or None for a bare ``Final``."""
    if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
        inner = _unwrap_final(ast.parse(annotation.value.strip(), mode='eval').body)
        return None if inner is None else ast.Constant(value=ast.unparse(inner))
    if isinstance(annotation, ast.Subscript):
        return annotation.slice
    return None


def make_mutable(node: ast.AnnAssign) -> ast.stmt:
    """Rewrite a ``Final`` declaration into a reassignable one.

    ``X: Final = 1`` becomes ``X = 1`` and ``X: Final[int] = 1`` becomes
    ``X: int = 1``.
    """
    inner = _unwrap_final(node.annotation)
    if inner is None:
        replacement: ast.stmt = ast.Assign(targets=[node.target], value=node.value)
    else:
        replacement = ast.AnnAssign(target=node.target, annotation=inner, value=node.value, simple=node.simple)
    return ast.copy_location(replacement, node)


class MockingbirdTransformer(ast.NodeTransformer):
    """Rewrites the direct children of a module body.

    Only statements directly in the module body are considered, so nested
    declarations are never touched even when they shadow a top-level name.
    The marker is replaced at most once.
    """

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        self.bindings: list[str] = []
        self.mutables: list[str] = []
        self.injected = False

    def visit_Module(self, node: ast.Module) -> ast.Module:
        scope = collect_module_scope(node)
        self.bindings = scope.names(exclude={OPT_IN_NAME})
        self.mutables = scope.mutables(exclude={OPT_IN_NAME})

        node.body = [self._rewrite(statement) for statement in node.body]
        return node

    def _rewrite(self, statement: ast.stmt) -> ast.stmt:
        if is_marker_declaration(statement):
            if self.injected:
                return statement
            self.injected = True
            return self._inject(statement)
        if (
            isinstance(statement, ast.AnnAssign)
            and statement.value is not None
            and is_final_annotation(statement.annotation)
        ):
            return make_mutable(statement)
        return statement

    def _inject(self, marker: ast.stmt) -> ast.stmt:
        declaration = build_mockingbird(self.bindings, self.mutables)
        for child in ast.walk(declaration):
            if 'lineno' in child._attributes:
                ast.copy_location(child, marker)
        return declaration


def transform_tree(tree: ast.Module, source: str, file_path: str = '<unknown>') -> TransformResult:
    """Transform a parsed module in place.

    Args:
        tree: The parsed module. It is modified in place when transformed.
        source: The raw source the tree was parsed from, used for the
            opt-in and ignore checks.
        file_path: Path of the source file, for log messages.

    Returns:
        TransformResult describing what was done.
    """
    if not should_transform(source):
        return TransformResult(transformed=False, injected=False, bindings=(), mutables=(), tree=tree)

    transformer = MockingbirdTransformer(file_path)
    new_tree = transformer.visit(tree)
    if not isinstance(new_tree, ast.Module):
        raise TypeError(f'Expected ast.Module, got {type(new_tree).__name__}')
    ast.fix_missing_locations(new_tree)

    logger.debug(
        'Transformed %s: %d bindings, %d mutable, injected=%s',
        file_path,
        len(transformer.bindings),
        len(transformer.mutables),
        transformer.injected,
    )
    return TransformResult(
        transformed=True,
        injected=transformer.injected,
        bindings=tuple(transformer.bindings),
        mutables=tuple(transformer.mutables),
        tree=new_tree,
    )


def transform_source(source: str, file_path: str = '<unknown>') -> str:
    """Transform module source code.

    This is the source-to-source entry point. Modules that do not opt in,
    that carry the ignore token, or that cannot be parsed are returned as the
    very same string.

    Args:
        source: The Python source code to transform.
        file_path: The path to the source file (for log messages).

    Returns:
        The rewritten source, or ``source`` itself when nothing applies.

    Example:
        >>> print(transform_source('x = 1'))
        x = 1
    """
    if not should_transform(source):
        return source

    try:
        tree = ast.parse(source, filename=file_path)
    except (SyntaxError, ValueError) as exc:
        logger.debug('Not transforming %s, source does not parse: %s', file_path, exc)
        return source

    result = transform_tree(tree, source, file_path)
    return ast.unparse(result.tree)
