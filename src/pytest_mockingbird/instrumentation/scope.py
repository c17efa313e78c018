"""Module-scope binding table.

This module walks a parsed module and records every name bound in the
module's global scope, together with the kind of declaration that introduced
it. Function, class, lambda and comprehension bodies open their own scopes
and are not entered.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, replace
import enum
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Collection, Iterator


class BindingKind(enum.Enum):
    """How a module-scope name was declared."""

    CONSTANT = 'constant'
    MUTABLE = 'mutable'
    FUNCTION = 'function'
    CLASS = 'class'
    IMPORT = 'import'


@dataclass(frozen=True)
class Binding:
    """A name bound in module scope.

    Attributes:
        name: The bound identifier.
        kind: Declaration kind of the binding.
        node: The statement or target node that first bound the name.
    """

    name: str
    kind: BindingKind
    node: ast.AST


def is_final_annotation(annotation: ast.expr | None) -> bool:
    """Return True if an annotation declares the binding ``Final``.

    Recognizes ``Final``, ``Final[T]``, ``typing.Final``, ``t.Final[T]`` and
    the string forms of those.

    Example:
        >>> is_final_annotation(ast.parse('Final[int]', mode='eval').body)
        True
        >>> is_final_annotation(ast.parse('int', mode='eval').body)
        False
    """
    if annotation is None:
        return False
    if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
        try:
            annotation = ast.parse(annotation.value.strip(), mode='eval').body
        except SyntaxError:
            return False
    if isinstance(annotation, ast.Subscript):
        annotation = annotation.value
    if isinstance(annotation, ast.Name):
        return annotation.id == 'Final'
    if isinstance(annotation, ast.Attribute):
        return annotation.attr == 'Final'
    return False


class ModuleScope:
    """Ordered table of module-scope bindings.

    Names appear in the order of their first binding in the source.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}

    def bind(self, name: str, kind: BindingKind, node: ast.AST) -> None:
        """Record a binding of ``name``.

        A plain reassignment turns any earlier binding of the name mutable;
        every other redeclaration keeps the first kind.
        """
        existing = self._bindings.get(name)
        if existing is None:
            self._bindings[name] = Binding(name, kind, node)
        elif kind is BindingKind.MUTABLE and existing.kind is not BindingKind.MUTABLE:
            self._bindings[name] = replace(existing, kind=BindingKind.MUTABLE)

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def __getitem__(self, name: str) -> Binding:
        return self._bindings[name]

    def __iter__(self) -> Iterator[Binding]:
        return iter(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)

    def names(self, exclude: Collection[str] = ()) -> list[str]:
        """Return every bound name except those in ``exclude``."""
        return [name for name in self._bindings if name not in exclude]

    def mutables(self, exclude: Collection[str] = ()) -> list[str]:
        """Return the names declared with a reassignable kind."""
        return [
            binding.name
            for binding in self._bindings.values()
            if binding.kind is BindingKind.MUTABLE and binding.name not in exclude
        ]


class ModuleScopeCollector(ast.NodeVisitor):
    """AST visitor that fills a ModuleScope from module-level code."""

    def __init__(self) -> None:
        self.scope = ModuleScope()

    def visit_FunctionDef(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        """Bind the function name; its body is a separate scope."""
        self.scope.bind(node.name, BindingKind.FUNCTION, node)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        """Bind the class name; its body is a separate scope."""
        self.scope.bind(node.name, BindingKind.CLASS, node)

    def visit_Lambda(self, node: ast.AST) -> None:
        """Skip nodes that open their own scope."""

    visit_ListComp = visit_SetComp = visit_DictComp = visit_GeneratorExp = visit_Lambda

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            name = alias.asname or alias.name.partition('.')[0]
            self.scope.bind(name, BindingKind.IMPORT, node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        for alias in node.names:
            if alias.name == '*':
                continue
            self.scope.bind(alias.asname or alias.name, BindingKind.IMPORT, node)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        """Bind annotated assignments; a bare annotation binds nothing."""
        if node.value is None:
            return
        if isinstance(node.target, ast.Name):
            kind = BindingKind.CONSTANT if is_final_annotation(node.annotation) else BindingKind.MUTABLE
            self.scope.bind(node.target.id, kind, node)
        else:
            self.visit(node.target)
        self.visit(node.value)

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Store):
            self.scope.bind(node.id, BindingKind.MUTABLE, node)

    def visit_MatchAs(self, node: ast.MatchAs) -> None:
        if node.name is not None:
            self.scope.bind(node.name, BindingKind.MUTABLE, node)
        self.generic_visit(node)

    def visit_MatchStar(self, node: ast.MatchStar) -> None:
        if node.name is not None:
            self.scope.bind(node.name, BindingKind.MUTABLE, node)

    def visit_MatchMapping(self, node: ast.MatchMapping) -> None:
        self.generic_visit(node)
        if node.rest is not None:
            self.scope.bind(node.rest, BindingKind.MUTABLE, node)


def collect_module_scope(tree: ast.Module) -> ModuleScope:
    """Collect the module-scope bindings of a parsed module.

    Args:
        tree: The parsed module.

    Returns:
        ModuleScope listing every name bound at module level.

    Example:
        >>> scope = collect_module_scope(ast.parse('import os\\nx = 1\\ndef f(): y = 2'))
        >>> scope.names()
        ['os', 'x', 'f']
        >>> scope.mutables()
        ['x']
    """
    collector = ModuleScopeCollector()
    collector.visit(tree)
    return collector.scope
