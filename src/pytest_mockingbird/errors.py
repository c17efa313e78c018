"""Exceptions raised by mockingbird registries.

Every error names the binding involved and the precondition that was
violated. Bulk operations (``unmock_all``, ``reset_all_mocks``, ``save_all``,
``restore_all``) never raise these for bindings with nothing to do.
"""

from __future__ import annotations


class MockingbirdError(RuntimeError):
    """Base class for all registry failures."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class AlreadyMockedError(MockingbirdError):
    """Raised when mocking a binding that is already mocked."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f'The reference "{name}" has already been mocked')


class NotMockedError(MockingbirdError):
    """Raised when unmocking or resetting a binding that is not mocked."""

    def __init__(self, name: str, action: str = 'unmocked') -> None:
        super().__init__(name, f'The reference "{name}" has NOT been mocked so cannot be {action}')


class NoRestorationPointError(MockingbirdError):
    """Raised when restoring a binding that has no saved value."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f'The reference "{name}" has no restoration points - you must save one first')


class UnknownBindingError(MockingbirdError):
    """Raised when a binding has neither a module slot nor an alias."""

    def __init__(self, name: str, module_name: str | None = None) -> None:
        where = f' in module {module_name!r}' if module_name else ''
        super().__init__(name, f'The reference "{name}" is not bound{where}')
