"""
Fingerprint Index - Heuristic matching of (title, body) pairs.

Used when an artifact or issue has no mapping yet: two populations are
compared by normalized content first, then by normalized title alone.
Changing the normalization rules changes which records count as "the same",
so they are deliberately narrow.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar


T = TypeVar("T")

FINGERPRINT_SEPARATOR = "::"

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_title(title: str | None) -> str:
    """Trim, collapse whitespace runs and lowercase."""
    return _WHITESPACE_RUN.sub(" ", (title or "").strip()).lower()


def normalize_body(body: str | None) -> str:
    """Normalize line endings and trim. Case is preserved."""
    return (body or "").replace("\r\n", "\n").strip()


def title_key(title: str | None) -> str:
    """Title-only fingerprint."""
    return normalize_title(title)


def content_fingerprint(title: str | None, body: str | None) -> str:
    """Fingerprint of normalized title plus normalized body."""
    return f"{normalize_title(title)}{FINGERPRINT_SEPARATOR}{normalize_body(body)}"


class FingerprintIndex(Generic[T]):
    """
    Lookup of items by content fingerprint and by title.

    Buckets keep encounter order, so "first unclaimed match" is deterministic.

    Example:
        >>> index = FingerprintIndex.build(issues, lambda i: i.title, lambda i: i.description)
        >>> match = index.first_unclaimed("Login Flow", "draft", lambda i: i.id in used)
    """

    def __init__(self) -> None:
        self.by_fingerprint: dict[str, list[T]] = {}
        self.by_title: dict[str, list[T]] = {}

    @classmethod
    def build(
        cls,
        items: Iterable[T],
        title_of: Callable[[T], str | None],
        body_of: Callable[[T], str | None],
    ) -> FingerprintIndex[T]:
        index: FingerprintIndex[T] = cls()
        for item in items:
            index.add(item, title_of(item), body_of(item))
        return index

    def add(self, item: T, title: str | None, body: str | None) -> None:
        self.by_fingerprint.setdefault(content_fingerprint(title, body), []).append(item)
        self.by_title.setdefault(title_key(title), []).append(item)

    def first_unclaimed(
        self,
        title: str | None,
        body: str | None,
        is_claimed: Callable[[T], bool],
    ) -> T | None:
        """
        Find the first unclaimed item matching by fingerprint, then by title.

        Args:
            title: Title of the item being matched
            body: Body of the item being matched
            is_claimed: Predicate excluding items already taken

        Returns:
            The matching item, or None
        """
        for bucket in (
            self.by_fingerprint.get(content_fingerprint(title, body), []),
            self.by_title.get(title_key(title), []),
        ):
            for item in bucket:
                if not is_claimed(item):
                    return item
        return None

    def has_title(self, title: str | None) -> bool:
        """Whether any item shares the title, claimed or not."""
        return bool(self.by_title.get(title_key(title)))

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.by_fingerprint.values())
