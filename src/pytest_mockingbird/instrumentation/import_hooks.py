"""Import hooks that apply the mockingbird transform at import time.

The import hooks work as follows:
1. MockingbirdFinder is registered on sys.meta_path
2. When Python imports a module, MockingbirdFinder.find_spec() locates its
   source file with the regular path-based finder
3. If the file is inside the configured paths and opts in, return a
   ModuleSpec with MockingbirdLoader; otherwise return None so the normal
   import machinery loads the module untouched
4. MockingbirdLoader.exec_module() transforms, compiles and executes the AST

Transformed code is never written to the bytecode cache, so a later import
without the hook gets the original module.

Example:
    >>> from pytest_mockingbird.instrumentation.import_hooks import (
    ...     register_import_hooks,
    ...     unregister_import_hooks,
    ... )
    >>> register_import_hooks(['src'])
    >>> # Modules under src/ that declare ``mockingbird`` are now transformed
    >>> unregister_import_hooks()
"""

from __future__ import annotations

import ast
import fnmatch
from importlib.abc import Loader, MetaPathFinder
from importlib.machinery import PathFinder
import importlib.util
import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING

from pytest_mockingbird.instrumentation.markers import should_transform
from pytest_mockingbird.instrumentation.transformer import transform_tree


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from importlib.machinery import ModuleSpec
    import os
    import types


logger = logging.getLogger(__name__)

# Never transformed: installed distributions and modules pytest rewrites itself.
_THIRD_PARTY_DIRS = frozenset(('site-packages', 'dist-packages'))
_TEST_MODULE_PATTERNS = ('test_*.py', '*_test.py', 'conftest.py')


class MockingbirdLoader(Loader):
    """Loader that executes the transformed AST of an opted-in module."""

    def __init__(self, source: str, file_path: str, module_name: str) -> None:
        """Initialize the loader with the module's source.

        Args:
            source: The module's source text.
            file_path: Path of the source file, used as the code filename.
            module_name: The name of the module being loaded.
        """
        self._source = source
        self._file_path = file_path
        self._module_name = module_name

    def create_module(self, spec: ModuleSpec) -> types.ModuleType | None:  # noqa: ARG002
        """Return None to use default module creation semantics."""
        return None

    def get_source(self, fullname: str) -> str:  # noqa: ARG002
        """Return the untransformed source of the module."""
        return self._source

    def exec_module(self, module: types.ModuleType) -> None:
        """Transform, compile and execute the module source.

        Line numbers of the original source are kept, so tracebacks point
        into the real file.

        Args:
            module: The module to execute code in.
        """
        tree = ast.parse(self._source, filename=self._file_path)
        result = transform_tree(tree, self._source, self._file_path)
        logger.debug('Loading %s with %d mockable bindings', self._module_name, len(result.bindings))

        # Executing our own transform of the module's own source.
        code = compile(result.tree, self._file_path, 'exec')
        exec(code, module.__dict__)  # noqa: S102


class MockingbirdFinder(MetaPathFinder):
    """Finder that routes opted-in modules to MockingbirdLoader.

    Only source files under one of ``paths`` and matching none of the
    ``exclude`` glob patterns are considered.
    """

    def __init__(self, paths: Iterable[str | os.PathLike[str]], exclude: Iterable[str] = ()) -> None:
        """Initialize the finder.

        Args:
            paths: Directories whose modules may be transformed.
            exclude: Glob patterns (matched against the POSIX form of the
                absolute file path) for files that must not be transformed.
        """
        self._paths = [Path(path).resolve() for path in paths]
        self._exclude = tuple(exclude)

    def is_candidate(self, file_path: Path) -> bool:
        """Return True if a source file may be transformed."""
        if file_path.suffix != '.py':
            return False
        if _THIRD_PARTY_DIRS.intersection(file_path.parts):
            return False
        if any(fnmatch.fnmatch(file_path.name, pattern) for pattern in _TEST_MODULE_PATTERNS):
            return False
        if not any(file_path.is_relative_to(root) for root in self._paths):
            return False
        posix_path = file_path.as_posix()
        return not any(fnmatch.fnmatch(posix_path, pattern) for pattern in self._exclude)

    def find_spec(
        self,
        fullname: str,
        path: Sequence[str] | None,
        target: types.ModuleType | None = None,  # noqa: ARG002
    ) -> ModuleSpec | None:
        """Find a module spec for the given module name.

        Args:
            fullname: The fully qualified module name.
            path: The parent package's search path, or None for top-level
                modules.
            target: The target module (unused).

        Returns:
            ModuleSpec with MockingbirdLoader if the module opts in, None
            otherwise.
        """
        spec = PathFinder.find_spec(fullname, path)
        if spec is None or spec.origin is None or not spec.has_location:
            return None

        file_path = Path(spec.origin).resolve()
        if not self.is_candidate(file_path):
            return None

        try:
            source = importlib.util.decode_source(file_path.read_bytes())
        except (OSError, UnicodeDecodeError, SyntaxError) as exc:
            logger.warning('Cannot read %s, importing it untransformed: %s', file_path, exc)
            return None

        if not should_transform(source):
            return None

        loader = MockingbirdLoader(source, str(file_path), fullname)
        return importlib.util.spec_from_file_location(
            fullname,
            file_path,
            loader=loader,
            submodule_search_locations=spec.submodule_search_locations,
        )


# Global reference to the registered finder (for cleanup)
_registered_finder: MockingbirdFinder | None = None


def register_import_hooks(paths: Iterable[str | os.PathLike[str]], exclude: Iterable[str] = ()) -> None:
    """Register the import hook for the given source directories.

    Args:
        paths: Directories whose opted-in modules should be transformed.
        exclude: Glob patterns for files to leave alone.
    """
    global _registered_finder  # noqa: PLW0603
    unregister_import_hooks()  # Clean up any existing registration

    _registered_finder = MockingbirdFinder(paths, exclude)
    sys.meta_path.insert(0, _registered_finder)


def unregister_import_hooks() -> None:
    """Unregister the import hook from sys.meta_path.

    Safe to call even if no hook is registered. Modules already imported
    through the hook stay transformed.
    """
    global _registered_finder  # noqa: PLW0603

    if _registered_finder is not None and _registered_finder in sys.meta_path:
        sys.meta_path.remove(_registered_finder)

    _registered_finder = None

    sys.meta_path[:] = [f for f in sys.meta_path if not isinstance(f, MockingbirdFinder)]
