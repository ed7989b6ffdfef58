from __future__ import annotations

import re

_ANNOTATION_SPLIT = re.compile(r"\s*[\(\[\{]", re.UNICODE)


def normalize_string(value: str | None) -> str:
    """
    Normalizes a string by stripping surrounding whitespace and lower-casing it.

    Parameters
    ----------
    value : str or None
        The input string to normalize. If None, an empty string is used.

    Returns
    -------
    str
        The normalized string.

    Examples
    --------
    >>> normalize_string("  Hikaru  ")
    'hikaru'
    >>> normalize_string(None)
    ''
    """
    return (value or "").strip().lower()


def normalize_handle(value: object | None) -> str:
    """Return the comparison key for a player handle.

    PGN headers occasionally carry annotations after the name, e.g.
    ``"MagnusCarlsen (2850)"``; anything from the first bracket on is dropped.
    """
    if value is None:
        return ""
    text = normalize_string(str(value))
    if not text:
        return ""
    return _ANNOTATION_SPLIT.split(text, maxsplit=1)[0].strip()
