"""Textual triggers that decide whether a module is transformed.

Both checks run against the raw source text rather than the AST, so a module
that never opts in costs one regular expression search and nothing else.
"""

from __future__ import annotations

import re


OPT_IN_NAME = 'mockingbird'
IGNORE_TOKEN = 'mockingbird-ignore'

# Column 0 only: a declaration nested in a block is indented and never opts in.
_OPT_IN_PATTERN = re.compile(
    r"""
    ^mockingbird[ \t]*
    (?:
        :[^=\n#;]+(?:=(?!=)[^\n]*)?   # annotated, with or without a value
        |=(?!=)[^\n]*                 # plain assignment
    )
    [ \t]*(?:[;#][^\n]*)?$
    """,
    re.MULTILINE | re.VERBOSE,
)

_IGNORE_PATTERN = re.compile(r'(?<![\w-])mockingbird-ignore\b')


def has_opt_in(source: str) -> bool:
    """Return True if the source declares the top-level opt-in marker.

    Accepted forms::

        mockingbird: Mockingbird
        mockingbird: Final = None
        mockingbird = None

    Args:
        source: Raw module source.

    Returns:
        True if a column-0 declaration of ``mockingbird`` is present.
    """
    return _OPT_IN_PATTERN.search(source) is not None


def has_ignore_token(source: str) -> bool:
    """Return True if ``mockingbird-ignore`` appears anywhere in the source."""
    return _IGNORE_PATTERN.search(source) is not None


def should_transform(source: str) -> bool:
    """Return True if the module opts in and is not ignored.

    The ignore token wins over the opt-in marker.

    Example:
        >>> should_transform('mockingbird = None')
        True
        >>> should_transform('mockingbird = None  # mockingbird-ignore')
        False
        >>> should_transform('x = 1')
        False
    """
    return has_opt_in(source) and not has_ignore_token(source)
