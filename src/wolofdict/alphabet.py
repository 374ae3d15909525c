"""Wolof alphabet tables and the alphabetic bucket indexer.

``bucket_of`` is the single source of truth for ``words.initial_letter``.
It is called whenever a term is set, never at read time, so browsing by
letter is a plain equality filter on a stored column.
"""

from __future__ import annotations

import unicodedata

# Letters of the browsing alphabet, in display order. "NG" is a bucket of
# its own even though it is written with two characters.
WOLOF_ALPHABET: tuple[str, ...] = (
    "A", "À", "B", "C", "D", "E", "É", "Ë", "F", "G", "I", "J", "K", "L",
    "M", "N", "NG", "Ñ", "Ŋ", "O", "Ó", "P", "Q", "R", "S", "T", "U", "W",
    "X", "Y",
)

DIGRAPH_BUCKETS: frozenset[str] = frozenset({"NG"})

# Fixed case table for the letters that carry Wolof/French diacritics.
# Applied after NFC composition so "N" + U+0303 arrives here as "ñ".
_UPPER: dict[str, str] = {
    "à": "À",
    "ã": "Ã",
    "ä": "Ä",
    "é": "É",
    "è": "È",
    "ë": "Ë",
    "ñ": "Ñ",
    "ŋ": "Ŋ",
    "ó": "Ó",
    "ö": "Ö",
}

_ALPHABET_RANK: dict[str, int] = {
    letter: rank for rank, letter in enumerate(WOLOF_ALPHABET)
}


def upper_char(char: str) -> str:
    """Uppercase a single code point without ever changing its length."""
    mapped = _UPPER.get(char)
    if mapped is not None:
        return mapped
    upper = char.upper()
    # e.g. "ß".upper() == "SS"; keep one code point per input code point
    return upper if len(upper) == 1 else char


def bucket_of(term: str) -> str:
    """Return the browsing bucket for ``term``.

    >>> bucket_of("Ngor"), bucket_of("aada"), bucket_of("ñaan")
    ('NG', 'A', 'Ñ')
    """
    if not term:
        raise ValueError("bucket_of() requires a non-empty term")
    head = unicodedata.normalize("NFC", term)[:2]
    upper = "".join(upper_char(c) for c in head)
    if len(upper) == 2 and upper in DIGRAPH_BUCKETS:
        return upper
    return upper[0]


def normalize_letter(letter: str) -> str:
    """Canonical form of a user-supplied bucket key ("ng" -> "NG")."""
    return "".join(
        upper_char(c) for c in unicodedata.normalize("NFC", letter.strip())
    )


def alphabet_sort_key(bucket: str) -> tuple[int, str]:
    """Sort key placing alphabet letters in Wolof order, others after."""
    rank = _ALPHABET_RANK.get(bucket)
    if rank is None:
        return (len(WOLOF_ALPHABET), bucket)
    return (rank, bucket)


def is_alphabet_letter(bucket: str) -> bool:
    """Check if a bucket is one of the Wolof alphabet letters."""
    return bucket in _ALPHABET_RANK
