"""Locale-aware string ordering for table sorting."""

import unicodedata
from typing import Callable, Iterable, List, Tuple, TypeVar

T = TypeVar("T")


def collation_key(text: str) -> Tuple[str, str, str]:
    """
    Sort key approximating a locale collator.

    Compares base letters first (accents and case ignored), then accents,
    then case with lowercase first: "a" < "A" < "á" < "b".
    """
    decomposed = unicodedata.normalize("NFD", text)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (base.casefold(), decomposed.casefold(), text.swapcase())


def sort_by_text(
    items: Iterable[T], key: Callable[[T], str], descending: bool = False
) -> List[T]:
    """Stable sort by a text field; None is treated as an empty string."""
    return sorted(
        items, key=lambda item: collation_key(key(item) or ""), reverse=descending
    )
