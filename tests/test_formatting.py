import pytest

from intakedoc.render.formatting import clean_amount, format_date_ddmmyyyy, image_src, text


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2025-03-07", "07-03-2025"),
        ("2025-03-07T10:30:00.000Z", "07-03-2025"),
        ("7/3/2025", "07-03-2025"),
        ("07.03.2025", "07-03-2025"),
        ("07-03-25", "07-03-2025"),
        ("070325", "07-03-2025"),
        ("07032025", "07-03-2025"),
        ("20250307", "07-03-2025"),
        ("", ""),
        ("next tuesday", "next tuesday"),
        ("2025-02-30", "2025-02-30"),
    ],
)
def test_format_date_ddmmyyyy(raw, expected):
    assert format_date_ddmmyyyy(raw) == expected


def test_format_date_handles_none():
    assert format_date_ddmmyyyy(None) == ""


def test_clean_amount_strips_currency_and_separators():
    assert clean_amount("₹ 63,74,025.00") == "6374025.00"
    assert clean_amount(None) == ""


def test_text_escapes_markup():
    assert text(" <script>x</script> ") == "&lt;script&gt;x&lt;/script&gt;"


def test_image_src_only_accepts_inline_images():
    assert image_src("data:image/png;base64,AAAA") == "data:image/png;base64,AAAA"
    assert image_src("https://example.com/sig.png") == ""
    assert image_src("data:text/html;base64,AAAA") == ""
    assert image_src("") == ""
