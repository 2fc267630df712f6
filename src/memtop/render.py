# src/memtop/render.py
"""Fixed-layout rendering of stats onto a Surface.

Rendering is a pure function of its inputs: nothing is remembered between
calls, and drawing the same inputs twice produces the same cells.
"""

from __future__ import annotations

from collections.abc import Mapping

from rich.style import Style

from memtop.formatting import (
    bool_to_word,
    format_bytes,
    format_bytes_rate,
    format_interval,
    format_uptime,
)
from memtop.rates import rate_value
from memtop.snapshot import Snapshot
from memtop.surface import Surface

PRODUCT_NAME = "memtop"
WAITING_TEXT = "Waiting for initial stats..."
CONTROLS_TEXT = "Controls: q to quit | r to reset rate baseline"

BASE_STYLE = Style()
HIGHLIGHT_STYLE = Style(bold=True)
ERROR_STYLE = Style(color="red", bold=True)


def draw_text(surface: Surface, x: int, y: int, text: str, style: Style | None = None) -> None:
    """Place text on one row, truncating at the right edge. Never wraps."""
    width, height = surface.dimensions()
    if y < 0 or y >= height:
        return
    for i, char in enumerate(text):
        pos = x + i
        if pos >= width:
            break
        if pos >= 0:
            surface.put(pos, y, char, style)


def hit_ratio(hits: float, misses: float) -> float:
    """Percentage of gets that hit, 0 when there were no gets."""
    total = hits + misses
    if total <= 0:
        return 0.0
    return hits / total * 100


def percent_of(used: float, limit: float) -> float:
    """used as a percentage of limit, 0 when limit is 0."""
    if limit <= 0:
        return 0.0
    return used / limit * 100


def stats_lines(snapshot: Snapshot, rates: Mapping[str, float] | None) -> list[str | None]:
    """Metric section lines in display order. None marks a blank spacer row."""
    v = snapshot.value

    hits = v("get_hits")
    misses = v("get_misses")
    used = v("bytes")
    limit = v("limit_maxbytes")

    incr = rate_value(rates, "incr_hits") + rate_value(rates, "incr_misses")
    decr = rate_value(rates, "decr_hits") + rate_value(rates, "decr_misses")
    touch = rate_value(rates, "touch_hits") + rate_value(rates, "touch_misses")

    return [
        (
            f"Time: {snapshot.timestamp:%Y-%m-%d %H:%M:%S}    "
            f"Uptime: {format_uptime(v('uptime'))}    "
            f"Version: {snapshot.text('version')}"
        ),
        (
            f"Requests: hits {hits:.0f}  misses {misses:.0f}  "
            f"hit ratio {hit_ratio(hits, misses):.2f}%  "
            f"evictions {v('evictions'):.0f}  reclaimed {v('reclaimed'):.0f}"
        ),
        None,
        (
            f"Memory: {format_bytes(used)} / {format_bytes(limit)} "
            f"({percent_of(used, limit):.1f}%)   Free: {format_bytes(limit - used)}"
        ),
        (
            f"Connections: current {v('curr_connections'):.0f}  "
            f"total {v('total_connections'):.0f}  "
            f"reserved {v('reserved_fds'):.0f}  "
            f"waiting {v('conn_yields'):.0f}  "
            f"max simultaneous {v('threads'):.0f}"
        ),
        (
            f"Commands/s: get {rate_value(rates, 'cmd_get'):.2f}  "
            f"set {rate_value(rates, 'cmd_set'):.2f}  "
            f"delete {rate_value(rates, 'cmd_delete'):.2f}  "
            f"incr {incr:.2f}  decr {decr:.2f}  touch {touch:.2f}"
        ),
        (
            f"Bandwidth/s: read {format_bytes_rate(rate_value(rates, 'bytes_read'))}  "
            f"write {format_bytes_rate(rate_value(rates, 'bytes_written'))}"
        ),
        (
            f"Items: current {v('curr_items'):.0f}  "
            f"total {v('total_items'):.0f}  "
            f"expired {v('expired_unfetched'):.0f}"
        ),
        (
            f"Slabs: {v('slab_global_page_pool'):.0f}  "
            f"Threads: {v('threads'):.0f}  "
            f"Accepting connections: {bool_to_word(v('accepting_conns') == 1)}"
        ),
    ]


def draw_screen(
    surface: Surface,
    address: str,
    interval: float,
    snapshot: Snapshot | None,
    rates: Mapping[str, float] | None,
    error: BaseException | str | None,
) -> None:
    """Paint the whole dashboard.

    A sampling error is shown above the last good stats rather than
    replacing them. The controls line is pinned to the bottom row.
    """
    surface.clear()
    width, height = surface.dimensions()
    if width <= 0 or height <= 0:
        surface.show()
        return

    draw_text(
        surface,
        0,
        0,
        f"{PRODUCT_NAME}  {address}  (refresh {format_interval(interval)})",
        HIGHLIGHT_STYLE,
    )

    line = 2

    if error is not None:
        draw_text(surface, 0, line, f"Error: {error}", ERROR_STYLE)
        line += 2

    if snapshot is not None:
        for text in stats_lines(snapshot, rates):
            if text is not None:
                draw_text(surface, 0, line, text, BASE_STYLE)
            line += 1
    elif error is None:
        draw_text(surface, 0, line, WAITING_TEXT, BASE_STYLE)

    if height > 2:
        draw_text(surface, 0, height - 1, CONTROLS_TEXT, HIGHLIGHT_STYLE)

    surface.show()
