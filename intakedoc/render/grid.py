from __future__ import annotations

import html
import math


BOX_WIDTH_PX = 20
BOX_HEIGHT_PX = 20
BOX_BORDER_COLOR = '#ee1e23'
BOX_TEXT_COLOR = '#58595b'


def grid_rows(value: str | None, boxes_per_line: int, *, min_rows: int = 1) -> list[list[str]]:
    """Lay a value out into rows of single-character cells.

    Never truncates. The last row is padded with empty cells, and an empty value
    still yields `min_rows` rows so the field keeps its printed shape.
    """
    if boxes_per_line <= 0:
        raise ValueError(f'boxes_per_line must be positive, got {boxes_per_line}')

    chars = list(str(value or ''))
    row_count = max(math.ceil(len(chars) / boxes_per_line), max(1, int(min_rows)))

    rows: list[list[str]] = []
    for row_index in range(row_count):
        start = row_index * boxes_per_line
        row = chars[start:start + boxes_per_line]
        row.extend([''] * (boxes_per_line - len(row)))
        rows.append(row)
    return rows


def _box_html(char: str, box_width: int, box_height: int) -> str:
    return (
        '<div class="grid-box" style="'
        f'width: {box_width}px; min-width: {box_width}px; max-width: {box_width}px; '
        f'height: {box_height}px; min-height: {box_height}px; line-height: {box_height}px; '
        f'border: 1px solid {BOX_BORDER_COLOR}; color: {BOX_TEXT_COLOR}; '
        'font-size: 10px; font-weight: 600; background-color: white; text-align: center; '
        'display: inline-flex; align-items: center; justify-content: center; '
        'box-sizing: border-box; flex-shrink: 0; flex-grow: 0; white-space: pre;'
        f'">{html.escape(char)}</div>'
    )


def render_grid(
    value: str | None,
    boxes_per_line: int,
    box_width: int = BOX_WIDTH_PX,
    box_height: int = BOX_HEIGHT_PX,
    *,
    min_rows: int = 1,
) -> str:
    rows = grid_rows(value, boxes_per_line, min_rows=min_rows)
    row_width = boxes_per_line * box_width + (boxes_per_line - 1)
    parts = ['<div class="grid" style="display: flex; flex-direction: column; gap: 2px;">']
    for row in rows:
        parts.append(
            '<div class="grid-row" style="display: flex; flex-direction: row; flex-wrap: nowrap; '
            f'gap: 1px; width: {row_width}px; min-width: {row_width}px; overflow: hidden;">'
        )
        parts.extend(_box_html(char, box_width, box_height) for char in row)
        parts.append('</div>')
    parts.append('</div>')
    return ''.join(parts)
