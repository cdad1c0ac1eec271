from __future__ import annotations

import io

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from intakedoc.errors import RenderProcessError


PNG_1PX_B64 = 'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=='
SIGNATURE = f'data:image/png;base64,{PNG_1PX_B64}'
OVERLAY_MARKER = 'SIGNATURE-OVERLAY'


def pdf_with_lines(lines: list[str]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    for line in lines:
        c.setFont('Helvetica', 14)
        c.drawString(72, 720, line)
        c.showPage()
    c.save()
    return buf.getvalue()


def source_marker(number: int) -> str:
    return f'SOURCE PAGE {number:02d}'


def fragment_marker(label: str) -> str:
    return f'FRAGMENT {label}'


class FakeSession:
    """Stands in for the headless browser: prints a marker line per rendered page."""

    def __init__(self, *, fail_on: str | None = None, error: BaseException | None = None, garbage_for: str | None = None):
        self.fail_on = fail_on
        self.error = error
        self.garbage_for = garbage_for
        self.rendered: list[str] = []
        self.html: dict[str, str] = {}
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def render_html_to_pdf(self, html: str, *, label: str) -> bytes:
        if self.closed:
            raise RenderProcessError('render after release', page=label)
        if label == self.fail_on:
            raise self.error or RenderProcessError('injected failure', page=label)
        self.rendered.append(label)
        self.html[label] = html
        if label == self.garbage_for:
            return b'not a pdf at all'
        marker = OVERLAY_MARKER if label == 'signature-overlay' else fragment_marker(label)
        return pdf_with_lines([marker])

    async def close(self) -> None:
        self.close_calls += 1


class FakeSessionFactory:
    def __init__(self, *, launch_error: BaseException | None = None, **session_kwargs):
        self.launch_error = launch_error
        self.session_kwargs = session_kwargs
        self.sessions: list[FakeSession] = []

    async def __call__(self) -> FakeSession:
        if self.launch_error is not None:
            raise self.launch_error
        session = FakeSession(**self.session_kwargs)
        self.sessions.append(session)
        return session

    @property
    def session(self) -> FakeSession:
        return self.sessions[-1]


def form_payload(
    *,
    first: dict | None = None,
    second: dict | None = None,
    third: dict | None = None,
    bhk_type: str = '3bhk',
    **extra,
) -> dict:
    payload = {
        'applicants': [first or {}, second or {}, third or {}],
        'bhkType': bhk_type,
        'tower': 'T2',
        'apartmentNumber': '1204',
        'floor': '12',
        'declarationDate': '2025-03-07',
        'declarationPlace': 'Gurugram',
    }
    payload.update(extra)
    return payload
