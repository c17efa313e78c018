"""Run-time registry for mocking, saving and restoring module bindings.

Every transformed module owns exactly one ``Mockingbird`` instance, created
by the statement that replaced its ``mockingbird`` marker and bound to the
module's ``globals()``. Test code drives it directly::

    from mypackage import core

    def test_uses_fake_fetch():
        fake = core.mockingbird.mock('fetch')
        fake.return_value = {'ok': True}
        try:
            assert core.refresh() == {'ok': True}
        finally:
            core.mockingbird.unmock('fetch')

Two independent mechanisms are provided:

- **mock / unmock**: swap a binding for a stand-in and put the original back.
- **save / restore**: a per-binding LIFO stack of earlier values.

Registries hold process-wide state and provide no locking. Tests that use
them must run one at a time within a process.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
import sys
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from unittest.mock import MagicMock
import weakref

from pytest_mockingbird.errors import (
    AlreadyMockedError,
    NoRestorationPointError,
    NotMockedError,
    UnknownBindingError,
)
from pytest_mockingbird.instrumentation.markers import OPT_IN_NAME


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, MutableMapping
    import types


logger = logging.getLogger(__name__)

_MISSING: Any = object()

_registries: weakref.WeakSet[Mockingbird] = weakref.WeakSet()

# Parent packages are never synced automatically for bindings holding these.
_SCALAR_TYPES = (type(None), bool, int, float, complex, str, bytes)


@runtime_checkable
class Resettable(Protocol):
    """A stand-in that can clear its own recorded state.

    ``unittest.mock.Mock`` and its subclasses satisfy this protocol.
    """

    def reset_mock(self) -> None:
        """Clear recorded calls and configured behavior."""
        ...


def _lookup(target: Any, name: str) -> Any:
    if isinstance(target, Mapping):
        return target.get(name, _MISSING)
    return getattr(target, name, _MISSING)


def _assign(target: Any, name: str, value: Any) -> None:
    if isinstance(target, Mapping):
        target[name] = value  # type: ignore[index]
    else:
        setattr(target, name, value)


class Mockingbird:
    """Binding registry for one module.

    Args:
        bindings: Every module-scope name captured when the module was
            transformed, excluding ``mockingbird`` itself.
        mutables: The reassignable subset of ``bindings``. ``save_all`` and
            ``restore_all`` operate on these names.
        namespace: The module's global namespace.
        factory: Zero-argument callable producing the default stand-in for
            ``mock``. Defaults to ``unittest.mock.MagicMock``.

    Every write goes to the module's own namespace and to each alias of the
    binding: ancestor packages that re-export it under the same name, and
    any namespace registered with ``alias``. An alias is only written while
    it still refers to the module's current value. Bindings holding
    ``None``, a bool, a number, a string or bytes only reach parent packages
    through ``alias``.

    Note:
        ``restore`` pops the most recent saved value, while ``restore_all``
        jumps straight to the oldest one and discards the whole stack.
    """

    def __init__(
        self,
        bindings: Iterable[str],
        mutables: Iterable[str],
        namespace: MutableMapping[str, Any],
        *,
        factory: Callable[[], Any] = MagicMock,
    ) -> None:
        self._bindings = tuple(bindings)
        self._mutables = tuple(mutables)
        self._namespace = namespace
        self._factory = factory
        self._aliases: list[Any] = []
        self._mock_cache: dict[str, Any] = {}
        self._restoration_points: dict[str, list[Any]] = {}
        _registries.add(self)

    def __repr__(self) -> str:
        return f'<Mockingbird for {self.module_name!r}: {len(self._bindings)} bindings, {len(self._mock_cache)} mocked>'

    @property
    def bindings(self) -> tuple[str, ...]:
        """Module-scope names known to this registry."""
        return self._bindings

    @property
    def mutables(self) -> tuple[str, ...]:
        """Names declared reassignable in the module source."""
        return self._mutables

    @property
    def module_name(self) -> str | None:
        """Name of the module that owns this registry."""
        return self._namespace.get('__name__')

    def alias(self, target: Any) -> Any:
        """Keep another namespace in sync with this module.

        Use this for modules that imported a binding by value, e.g.
        ``from mypackage.core import fetch``.

        Args:
            target: A module (or any object) or a mutable mapping.

        Returns:
            The target, so it can be used inline.
        """
        if not any(existing is target for existing in self._aliases):
            self._aliases.append(target)
        return target

    def is_mocked(self, name: str) -> bool:
        """Return True while ``name`` is mocked."""
        return name in self._mock_cache

    def _ancestor_packages(self) -> list[Any]:
        packages: list[Any] = []
        parent = (self.module_name or '').rpartition('.')[0]
        while parent:
            module = sys.modules.get(parent)
            if module is not None:
                packages.append(module)
            parent = parent.rpartition('.')[0]
        return packages

    def _get(self, name: str) -> Any:
        if name in self._namespace:
            return self._namespace[name]
        for target in self._aliases:
            value = _lookup(target, name)
            if value is not _MISSING:
                return value
        raise UnknownBindingError(name, self.module_name)

    def _is_bound(self, name: str) -> bool:
        return name in self._namespace or any(_lookup(target, name) is not _MISSING for target in self._aliases)

    def _set(self, name: str, value: Any) -> None:
        local = name in self._namespace
        previous = self._namespace.get(name, _MISSING)
        if local:
            self._namespace[name] = value

        targets = list(self._aliases)
        if local and not isinstance(previous, _SCALAR_TYPES):
            targets.extend(self._ancestor_packages())
        for target in targets:
            current = _lookup(target, name)
            if current is _MISSING or (local and current is not previous):
                continue
            _assign(target, name, value)

    def _reset(self, name: str) -> None:
        if not self._is_bound(name):
            logger.debug('Not resetting unbound %s.%s', self.module_name, name)
            return
        value = self._get(name)
        if isinstance(value, Resettable) and callable(value.reset_mock):
            value.reset_mock()

    def mock(self, name: str, implementation: Any = _MISSING) -> Any:
        """Replace a binding with a stand-in.

        Args:
            name: The binding to replace.
            implementation: The replacement value. A fresh stand-in from the
                registry's factory is used when omitted.

        Returns:
            The installed implementation.

        Raises:
            AlreadyMockedError: If ``name`` is already mocked.
            UnknownBindingError: If ``name`` is not bound.
        """
        if name in self._mock_cache:
            raise AlreadyMockedError(name)

        original = self._get(name)
        if implementation is _MISSING:
            implementation = self._factory()

        self._mock_cache[name] = original
        self._set(name, implementation)
        logger.debug('Mocked %s.%s', self.module_name, name)

        return implementation

    def unmock(self, name: str) -> Any:
        """Put a mocked binding's original value back.

        Returns:
            The restored original value.

        Raises:
            NotMockedError: If ``name`` is not mocked.
        """
        if name not in self._mock_cache:
            raise NotMockedError(name)

        original = self._mock_cache[name]
        self._set(name, original)
        del self._mock_cache[name]
        logger.debug('Unmocked %s.%s', self.module_name, name)

        return original

    def unmock_all(self) -> None:
        """Unmock every mocked binding. Does nothing if none are mocked."""
        for name, original in self._mock_cache.items():
            self._set(name, original)

        self._mock_cache.clear()

    def reset_mock(self, name: str) -> None:
        """Call ``reset_mock()`` on a mocked binding's stand-in, if it has one.

        Raises:
            NotMockedError: If ``name`` is not mocked, even when the stand-in
                has nothing to reset.
        """
        if name not in self._mock_cache:
            raise NotMockedError(name, 'reset')

        self._reset(name)

    def reset_all_mocks(self) -> None:
        """Reset every mocked binding; stand-ins without ``reset_mock`` are skipped."""
        for name in list(self._mock_cache):
            self._reset(name)

    def save(self, name: str) -> Any:
        """Push the current value of a binding onto its restoration stack.

        The binding itself is not changed.

        Returns:
            The saved value.
        """
        value = self._get(name)
        self._restoration_points.setdefault(name, []).append(value)
        return value

    def restore(self, name: str) -> Any:
        """Pop the most recently saved value of a binding and install it.

        Returns:
            The restored value.

        Raises:
            NoRestorationPointError: If nothing is saved for ``name``.
        """
        restoration_points = self._restoration_points.get(name)
        if not restoration_points:
            raise NoRestorationPointError(name)

        value = restoration_points.pop()
        self._set(name, value)

        return value

    def save_all(self) -> None:
        """Save every mutable binding, in declaration order.

        Mutable names that are not bound yet are skipped.
        """
        for name in self._mutables:
            if not self._is_bound(name):
                logger.debug('Not saving unbound %s.%s', self.module_name, name)
                continue
            self.save(name)

    def restore_all(self) -> None:
        """Restore every mutable binding to its oldest saved value.

        Unlike ``restore``, this discards the binding's whole stack rather
        than popping a single level. Bindings with nothing saved are skipped.
        """
        for name in self._mutables:
            restoration_points = self._restoration_points.get(name)
            if restoration_points:
                self._set(name, restoration_points[0])
                self._restoration_points[name] = []

    # Names used by test suites written against the camelCase contract.
    unmockAll = unmock_all  # noqa: N815
    resetMock = reset_mock  # noqa: N815
    resetAllMocks = reset_all_mocks  # noqa: N815
    saveAll = save_all  # noqa: N815
    restoreAll = restore_all  # noqa: N815


def iter_registries() -> list[Mockingbird]:
    """Return every registry that is still alive."""
    return list(_registries)


def unmock_everything() -> None:
    """Unmock and restore every live registry.

    Intended for test teardown; it never raises for registries with nothing
    mocked or saved.
    """
    for registry in iter_registries():
        registry.unmock_all()
        registry.restore_all()


def registry_for(module: types.ModuleType) -> Mockingbird:
    """Return the registry a transformed module declared.

    Raises:
        TypeError: If the module was not transformed, i.e. it has no
            ``mockingbird`` registry.
    """
    registry = getattr(module, OPT_IN_NAME, None)
    if not isinstance(registry, Mockingbird):
        raise TypeError(
            f'Module {module.__name__!r} has no mockingbird registry; '
            f'declare a top-level "{OPT_IN_NAME}" and import it with the mockingbird import hook enabled'
        )
    return registry
