"""Client-side projections of fetched data.

Everything here is pure and synchronous: it runs on every keystroke and
never touches the network.
"""

from __future__ import annotations

from typing import Callable, Sequence, TypeVar

T = TypeVar("T")

PAGE_SIZE = 20


def filter_by_name(items: Sequence[T], text: str, name: Callable[[T], str]) -> list[T]:
    """Case-insensitive substring filter; an empty filter keeps everything."""
    if not text:
        return list(items)
    needle = text.lower()
    return [item for item in items if needle in name(item).lower()]


def clamp_index(index: int, length: int) -> int:
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


def page_count(length: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages needed for length items (at least one)."""
    return max(1, (length + page_size - 1) // page_size)


def page_of(index: int, page_size: int = PAGE_SIZE) -> int:
    return index // page_size


def paginate(items: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> list[T]:
    """The slice of items shown on a zero-based page."""
    page = max(0, min(page, page_count(len(items), page_size) - 1))
    start = page * page_size
    return list(items[start:start + page_size])


def search_lines(text: str, query: str) -> list[int]:
    """Zero-based numbers of the lines containing query, ignoring case."""
    if not query:
        return []
    needle = query.lower()
    return [i for i, line in enumerate(text.splitlines()) if needle in line.lower()]


def next_match(matches: Sequence[int], current: int, backwards: bool = False) -> int | None:
    """First match after (or before) the current line, wrapping around."""
    if not matches:
        return None
    if backwards:
        earlier = [m for m in matches if m < current]
        return earlier[-1] if earlier else matches[-1]
    later = [m for m in matches if m > current]
    return later[0] if later else matches[0]
