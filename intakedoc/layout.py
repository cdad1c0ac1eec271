from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class StaticPage:
    """A named page of the source document, addressed by its 1-indexed number."""

    name: str
    number: int

    @property
    def index(self) -> int:
        return self.number - 1


@dataclass(frozen=True)
class PageRange:
    name: str
    first: int
    last: int | None = None

    def numbers(self, page_count: int) -> list[int]:
        last = page_count if self.last is None else min(self.last, page_count)
        return list(range(self.first, last + 1))


# Source pages 1-4 are kept, 5-8 are replaced by rendered pages, 9..N are kept.
LEADING_STATIC_PAGES = PageRange('leading-static', 1, 4)
REPLACED_PAGES = PageRange('replaced-by-dynamic', 5, 8)
TRAILING_STATIC_PAGES = PageRange('trailing-static', 9)

# Cover, index, and the schedule/annexure pages that already carry their own signature rows.
DEFAULT_OVERLAY_SKIP_PAGES: frozenset[int] = frozenset({1, 2, 18, 19, 20, 26})

FLOOR_PLAN_PAGE = StaticPage('floor-plan-insert', 21)

# Placement of the floor-plan image on FLOOR_PLAN_PAGE, top-down, in points.
FLOOR_PLAN_BOX = (72.0, 400.0, 450.0, 300.0)


@dataclass(frozen=True)
class PageLayout:
    leading: PageRange = LEADING_STATIC_PAGES
    replaced: PageRange = REPLACED_PAGES
    trailing: PageRange = TRAILING_STATIC_PAGES
    skip_pages: frozenset[int] = DEFAULT_OVERLAY_SKIP_PAGES
    floor_plan_page: StaticPage = FLOOR_PLAN_PAGE

    @classmethod
    def with_skip_pages(cls, skip_pages: Iterable[int] | None) -> 'PageLayout':
        if skip_pages is None:
            return cls()
        return cls(skip_pages=frozenset(int(n) for n in skip_pages))

    def leading_numbers(self, page_count: int) -> list[int]:
        return self.leading.numbers(page_count)

    def trailing_numbers(self, page_count: int) -> list[int]:
        return self.trailing.numbers(page_count)

    def receives_overlay(self, number: int) -> bool:
        return number not in self.skip_pages

    def output_page_count(self, page_count: int, dynamic_count: int) -> int:
        return len(self.leading_numbers(page_count)) + dynamic_count + len(self.trailing_numbers(page_count))

    def output_number_of(self, source_number: int, page_count: int, dynamic_count: int) -> int | None:
        """Map a source page to its position in the assembled document (1-indexed)."""
        leading = self.leading_numbers(page_count)
        if source_number in leading:
            return leading.index(source_number) + 1
        trailing = self.trailing_numbers(page_count)
        if source_number in trailing:
            return len(leading) + dynamic_count + trailing.index(source_number) + 1
        return None
