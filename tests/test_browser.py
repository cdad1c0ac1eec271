import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from intakedoc.adapters.browser import BrowserConfig, BrowserSession
from intakedoc.errors import RenderProcessError, RenderTimeoutError


class FakePage:
    def __init__(self, error=None):
        self.error = error
        self.closed = False
        self.default_timeout = None
        self.navigation_timeout = None
        self.content_kwargs = None
        self.pdf_kwargs = None

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    async def set_content(self, html, **kwargs):
        self.content_kwargs = kwargs
        if self.error is not None:
            raise self.error

    async def pdf(self, **kwargs):
        self.pdf_kwargs = kwargs
        return b"%PDF-1.7 rendered"

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.page_kwargs = None
        self.close_calls = 0

    async def new_page(self, **kwargs):
        self.page_kwargs = kwargs
        return self.page

    async def close(self):
        self.close_calls += 1


def _session(page, **cfg):
    session = BrowserSession(BrowserConfig(**cfg))
    session._browser = FakeBrowser(page)
    return session


def test_render_prints_a4_with_zero_margin():
    page = FakePage()
    session = _session(page, timeout_ms=10000)

    pdf_bytes = asyncio.run(session.render_html_to_pdf("<html></html>", label="applicant-1"))

    assert pdf_bytes.startswith(b"%PDF")
    assert page.pdf_kwargs["format"] == "A4"
    assert page.pdf_kwargs["print_background"] is True
    assert set(page.pdf_kwargs["margin"].values()) == {"0"}
    assert page.content_kwargs["wait_until"] == "load"
    assert page.default_timeout == 10000
    assert session._browser.page_kwargs["viewport"] == {"width": 612, "height": 792}
    assert page.closed is True
    assert session.render_count == 1


def test_timeout_is_translated_and_page_closed():
    page = FakePage(error=PlaywrightTimeoutError("Timeout 10000ms exceeded"))
    session = _session(page)

    with pytest.raises(RenderTimeoutError) as excinfo:
        asyncio.run(session.render_html_to_pdf("<html></html>", label="apartment-declaration"))

    assert excinfo.value.page == "apartment-declaration"
    assert excinfo.value.retryable is True
    assert page.closed is True


def test_browser_failure_is_translated():
    page = FakePage(error=PlaywrightError("Target page, context or browser has been closed"))
    session = _session(page)

    with pytest.raises(RenderProcessError) as excinfo:
        asyncio.run(session.render_html_to_pdf("<html></html>", label="signature-overlay"))

    assert excinfo.value.page == "signature-overlay"
    assert "Target page" in excinfo.value.to_payload()["details"]
    assert page.closed is True


def test_close_is_idempotent_and_blocks_further_renders():
    session = _session(FakePage())
    browser = session._browser

    asyncio.run(session.close())
    asyncio.run(session.close())

    assert browser.close_calls == 1
    assert session.closed is True
    with pytest.raises(RenderProcessError):
        asyncio.run(session.render_html_to_pdf("<html></html>", label="applicant-1"))


class HangingPrintPage(FakePage):
    async def pdf(self, **kwargs):
        self.pdf_kwargs = kwargs
        await asyncio.sleep(3600)


def test_print_step_is_bounded_by_page_timeout():
    page = HangingPrintPage()
    session = _session(page, timeout_ms=200)

    async def run():
        return await asyncio.wait_for(session.render_html_to_pdf("<html></html>", label="applicant-2"), timeout=5)

    with pytest.raises(RenderTimeoutError) as excinfo:
        asyncio.run(run())

    assert excinfo.value.page == "applicant-2"
    assert excinfo.value.retryable is True
    assert page.closed is True
    assert session.render_count == 0
