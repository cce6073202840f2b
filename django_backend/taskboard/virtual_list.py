"""
Windowing over a flat row list.

Only the rows intersecting the viewport (plus ``overscan`` rows on each side)
are returned for rendering. Row heights come from a fixed value or an
``index -> height`` function; offsets are kept as prefix sums so a scroll
lookup is a binary search.
"""
import bisect
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

logger = logging.getLogger(__name__)

LOADING = "loading"
EMPTY = "empty"
LOADER = "loader"

DEFAULT_ROW_HEIGHT = 192
PLACEHOLDER_HEIGHT = 200


@dataclass(frozen=True)
class Slot:
    index: int
    key: str
    top: int
    height: int
    row: object = None

    @property
    def is_placeholder(self):
        return self.row is None


@dataclass(frozen=True)
class Window:
    start: int
    stop: int
    render_start: int
    render_stop: int
    slots: List[Slot]
    total_height: int


def row_key(row, index):
    return getattr(row, "key", None) or str(index)


class VirtualList:
    def __init__(
        self,
        rows,
        item_height: Union[int, Callable[[int], int]] = DEFAULT_ROW_HEIGHT,
        viewport_height=800,
        overscan=5,
        threshold=5,
        has_next_page=False,
        load_next_page: Optional[Callable[[], None]] = None,
        loading=False,
    ):
        self.item_height = item_height
        self.viewport_height = viewport_height
        self.overscan = overscan
        self.threshold = threshold
        self.has_next_page = has_next_page
        self.load_next_page = load_next_page
        self.loading = loading
        self._requested_at = None
        self.reset(rows)

    def height_of(self, index):
        if callable(self.item_height):
            return self.item_height(index)
        return self.item_height

    def reset(self, rows=None):
        """Recompute offsets, after the rows or their heights changed."""
        if rows is not None:
            self.rows = list(rows)
        self._offsets = [0]
        for index in range(len(self.rows)):
            self._offsets.append(self._offsets[-1] + self.height_of(index))

    @property
    def total_height(self):
        height = self._offsets[-1]
        if not self.rows or self.has_next_page:
            height += PLACEHOLDER_HEIGHT
        return height

    def index_at(self, offset):
        """Index of the row covering ``offset`` pixels from the top."""
        if not self.rows:
            return 0
        index = bisect.bisect_right(self._offsets, max(offset, 0)) - 1
        return min(index, len(self.rows) - 1)

    def _placeholder(self):
        key = LOADING if self.loading else EMPTY
        return Window(0, 0, 0, 0, [Slot(0, key, 0, PLACEHOLDER_HEIGHT)], PLACEHOLDER_HEIGHT)

    def _maybe_load_more(self, stop):
        if not (self.has_next_page and self.load_next_page):
            return
        if stop < len(self.rows) - self.threshold:
            return
        # once per list length, so repeated scroll events do not re-request
        if self._requested_at == len(self.rows):
            return
        self._requested_at = len(self.rows)
        logger.debug(f"Requesting next page at {len(self.rows)} rows")
        self.load_next_page()

    def window(self, scroll_offset=0) -> Window:
        if not self.rows:
            return self._placeholder()

        start = self.index_at(scroll_offset)
        stop = self.index_at(scroll_offset + self.viewport_height - 1) + 1
        render_start = max(0, start - self.overscan)
        render_stop = min(len(self.rows), stop + self.overscan)

        slots = [
            Slot(i, row_key(self.rows[i], i), self._offsets[i], self.height_of(i), self.rows[i])
            for i in range(render_start, render_stop)
        ]
        if self.has_next_page and render_stop == len(self.rows):
            slots.append(Slot(len(self.rows), LOADER, self._offsets[-1], PLACEHOLDER_HEIGHT))

        self._maybe_load_more(stop)
        return Window(start, stop, render_start, render_stop, slots, self.total_height)
