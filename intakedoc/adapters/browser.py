from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import RenderProcessError, RenderTimeoutError


logger = logging.getLogger(__name__)

ZERO_MARGIN = {'top': '0', 'right': '0', 'bottom': '0', 'left': '0'}


@dataclass
class BrowserConfig:
    timeout_ms: int = 10000
    executable_path: str | None = None
    launch_args: list[str] = field(default_factory=list)
    viewport_width: int = 612
    viewport_height: int = 792


class BrowserSession:
    """One headless Chromium process, owned by a single generation request.

    Pages are opened and closed per render; the browser itself is closed once
    through `close()`.
    """

    def __init__(self, cfg: BrowserConfig):
        self.cfg = cfg
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._closed = False
        self.render_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> 'BrowserSession':
        launch_kwargs: dict[str, Any] = {
            'headless': True,
            'args': list(self.cfg.launch_args),
            'timeout': max(1000, int(self.cfg.timeout_ms) * 3),
        }
        if self.cfg.executable_path:
            launch_kwargs['executable_path'] = self.cfg.executable_path

        started = time.monotonic()
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(**launch_kwargs)
        except (PlaywrightError, OSError) as exc:
            await self._stop_driver()
            self._closed = True
            logger.error(
                'Browser launch failed (executable=%s): %s',
                self.cfg.executable_path or 'bundled chromium',
                exc,
            )
            raise RenderProcessError(
                'Headless browser failed to launch',
                cause=exc,
                stage='render_dynamic_pages',
            ) from exc

        logger.info(
            'Browser launched in %.2fs (executable=%s)',
            time.monotonic() - started,
            self.cfg.executable_path or 'bundled chromium',
        )
        return self

    async def render_html_to_pdf(self, html: str, *, label: str) -> bytes:
        if self._browser is None or self._closed:
            raise RenderProcessError('Browser session is not running', page=label)

        started = time.monotonic()
        try:
            page = await self._browser.new_page(
                viewport={'width': self.cfg.viewport_width, 'height': self.cfg.viewport_height},
                device_scale_factor=1,
            )
        except PlaywrightError as exc:
            logger.error('Opening page %s failed: %s', label, exc)
            raise RenderProcessError('Could not open a browser page', cause=exc, page=label) from exc

        try:
            page.set_default_timeout(self.cfg.timeout_ms)
            page.set_default_navigation_timeout(self.cfg.timeout_ms)
            # Content is fully inline, so the load event is enough.
            await page.set_content(html, wait_until='load', timeout=self.cfg.timeout_ms)
            # page.pdf takes no timeout of its own.
            pdf_bytes = await asyncio.wait_for(
                page.pdf(format='A4', print_background=True, margin=ZERO_MARGIN),
                timeout=self.cfg.timeout_ms / 1000,
            )
        except (PlaywrightTimeoutError, asyncio.TimeoutError) as exc:
            logger.error('Rendering %s timed out after %sms', label, self.cfg.timeout_ms)
            raise RenderTimeoutError(
                f'Rendering {label} exceeded {self.cfg.timeout_ms}ms',
                cause=exc,
                page=label,
            ) from exc
        except PlaywrightError as exc:
            logger.error('Rendering %s failed in browser: %s', label, exc)
            raise RenderProcessError(f'Browser failed while rendering {label}', cause=exc, page=label) from exc
        finally:
            try:
                await page.close()
            except PlaywrightError as exc:
                logger.warning('Closing page %s failed: %s', label, exc)

        self.render_count += 1
        logger.info('Rendered %s to PDF (%d bytes) in %.2fs', label, len(pdf_bytes), time.monotonic() - started)
        return pdf_bytes

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.warning('Closing browser failed: %s', exc)
            finally:
                self._browser = None
        await self._stop_driver()
        logger.info('Browser released after %d renders', self.render_count)

    async def _stop_driver(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as exc:
            logger.warning('Stopping Playwright driver failed: %s', exc)
        finally:
            self._playwright = None


async def launch_browser_session(cfg: BrowserConfig) -> BrowserSession:
    return await BrowserSession(cfg).start()
