"""pytest-mockingbird: mock the module-level bindings of the code under test.

Python modules expose their globals, but code that copied a binding (``from
core import fetch``) or that treats a binding as ``Final`` gives tests no
clean way to swap it and put it back. A module that declares a top-level
``mockingbird`` gets a registry that can.

Example:
    Opt a module in::

        from pytest_mockingbird import Mockingbird

        mockingbird: Mockingbird

        TIMEOUT: Final = 30

        def fetch(url): ...

    Then, with ``pytest --mockingbird``::

        from mypackage import core

        def test_fetch_is_mocked():
            fake = core.mockingbird.mock('fetch')
            ...
            core.mockingbird.unmock('fetch')
"""

from __future__ import annotations

from pytest_mockingbird.errors import (
    AlreadyMockedError,
    MockingbirdError,
    NoRestorationPointError,
    NotMockedError,
    UnknownBindingError,
)
from pytest_mockingbird.instrumentation import transform_source
from pytest_mockingbird.registry import Mockingbird, Resettable, registry_for, unmock_everything


__version__ = '0.4.0'
__all__ = [
    'AlreadyMockedError',
    'Mockingbird',
    'MockingbirdError',
    'NoRestorationPointError',
    'NotMockedError',
    'Resettable',
    'UnknownBindingError',
    '__version__',
    'registry_for',
    'transform_source',
    'unmock_everything',
]
