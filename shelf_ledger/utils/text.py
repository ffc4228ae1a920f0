"""
Text helpers for location naming and ordering
"""

import re

_WHITESPACE = re.compile(r'\s+')
_DIGITS = re.compile(r'(\d+)')


def slugify(name: str) -> str:
    """
    Path segment for a location name: lower-cased, whitespace runs become "-".

    Example:
        >>> slugify("Raf A 10")
        'raf-a-10'
    """
    return _WHITESPACE.sub('-', name.strip().lower())


def natural_key(value: str):
    """
    Sort key that orders embedded numbers numerically ("A2" before "A10").

    Example:
        >>> sorted(["A10", "A2", "A1"], key=natural_key)
        ['A1', 'A2', 'A10']
    """
    # re.split with a capturing group puts the digit runs at odd indexes
    parts = _DIGITS.split(value or '')
    return tuple(
        (0, int(part), '') if index % 2 else (1, 0, part.casefold())
        for index, part in enumerate(parts)
        if part != ''
    )
