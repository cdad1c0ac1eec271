import re

import pytest

from intakedoc.render.grid import grid_rows, render_grid


@pytest.mark.parametrize(
    "value,boxes,expected_rows",
    [
        ("ASHA RAO", 20, 1),
        ("A" * 20, 20, 1),
        ("A" * 21, 20, 2),
        ("A" * 60, 28, 3),
        ("123456789012", 12, 1),
    ],
)
def test_row_count_is_ceiling_of_length(value, boxes, expected_rows):
    rows = grid_rows(value, boxes)
    assert len(rows) == expected_rows
    assert all(len(row) == boxes for row in rows)


def test_never_truncates_and_pads_last_row():
    value = "House 14, Sector 54, Golf Course Road, Gurugram"
    rows = grid_rows(value, 28)
    assert "".join("".join(row) for row in rows) == value
    assert rows[-1][-1] == ""


def test_empty_value_renders_one_row_of_empty_boxes():
    rows = grid_rows("", 12)
    assert rows == [[""] * 12]


def test_min_rows_keeps_multi_line_shape():
    rows = grid_rows("Ward 7", 23, min_rows=2)
    assert len(rows) == 2
    assert rows[1] == [""] * 23


def test_rejects_non_positive_box_count():
    with pytest.raises(ValueError):
        grid_rows("abc", 0)


def test_render_grid_rows_and_boxes():
    html = render_grid("ABCDE", 3, 20, 20)
    assert html.count('class="grid-row"') == 2
    assert html.count('class="grid-box"') == 6
    assert "width: 20px" in html
    assert "flex-wrap: nowrap" in html


def test_render_grid_escapes_characters():
    html = render_grid("<b>&", 10)
    assert "<b>" not in html
    assert "&lt;" in html
    assert "&amp;" in html


def test_render_grid_one_character_per_box():
    html = render_grid("AB C", 4)
    contents = re.findall(r'class="grid-box"[^>]*>([^<]*)</div>', html)
    assert contents == ["A", "B", " ", "C"]
