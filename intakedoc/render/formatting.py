from __future__ import annotations

import html
import re
from datetime import date


_ISO_DATE = re.compile(r'^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?:[T\s].*)?$')
_DAY_FIRST_DATE = re.compile(r'^(\d{1,2})[-/.](\d{1,2})[-/.](\d{2}|\d{4})$')
_IMAGE_DATA_URI = re.compile(r'^data:image/[a-zA-Z0-9.+-]+;base64,[A-Za-z0-9+/=\s]+$')


def _expand_year(token: str) -> int:
    year = int(token)
    if len(token) == 2:
        year += 2000
    return year


def _format_ddmmyyyy(year: int, month: int, day: int) -> str | None:
    try:
        value = date(year, month, day)
    except ValueError:
        return None
    return f'{value.day:02d}-{value.month:02d}-{value.year:04d}'


def format_date_ddmmyyyy(value: str | None) -> str:
    """Normalize a user-entered date to DD-MM-YYYY.

    Accepts YYYY-MM-DD (optionally with a time part), day-first dates delimited
    by '/', '-' or '.', and bare DDMMYY / DDMMYYYY / YYYYMMDD digits. Anything
    else is returned unchanged.
    """
    raw = str(value or '').strip()
    if not raw:
        return ''

    match = _ISO_DATE.match(raw)
    if match:
        formatted = _format_ddmmyyyy(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        return formatted or raw

    match = _DAY_FIRST_DATE.match(raw)
    if match:
        formatted = _format_ddmmyyyy(
            _expand_year(match.group(3)),
            int(match.group(2)),
            int(match.group(1)),
        )
        return formatted or raw

    if raw.isdigit() and len(raw) == 6:
        formatted = _format_ddmmyyyy(_expand_year(raw[4:6]), int(raw[2:4]), int(raw[0:2]))
        return formatted or raw

    if raw.isdigit() and len(raw) == 8:
        if raw[:2] in {'19', '20'}:
            formatted = _format_ddmmyyyy(int(raw[0:4]), int(raw[4:6]), int(raw[6:8]))
            if formatted:
                return formatted
        formatted = _format_ddmmyyyy(int(raw[4:8]), int(raw[2:4]), int(raw[0:2]))
        return formatted or raw

    return raw


def clean_amount(value: str | None) -> str:
    return re.sub(r'[₹,\s]', '', str(value or ''))


def text(value: str | None) -> str:
    return html.escape(str(value or '').strip())


def image_src(value: str | None) -> str:
    """Return the value as an <img> src if it is an inline image, else ''."""
    token = str(value or '').strip()
    if token and _IMAGE_DATA_URI.match(token):
        return html.escape(token, quote=True)
    return ''
