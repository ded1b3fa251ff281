"""
Page Renderer
=============

Playwright-based screenshot capture at the fixed e-ink viewport.

Every call launches its own browser, renders exactly one document and tears the
browser down again, including when the caller cancels or the deadline expires.
Concurrent renders therefore never share a session.
"""

from typing import Any, AsyncGenerator, Optional
import asyncio
import io
from contextlib import asynccontextmanager
from urllib.parse import quote, urlparse

from playwright.async_api import async_playwright, Error as PlaywrightError, Page
from PIL import Image, UnidentifiedImageError

from byos_render.config.logging import get_logger
from byos_render.config.settings import Settings, get_settings
from byos_render.core.errors import CaptureError, NavigationError, SessionLaunchError

logger = get_logger(__name__)

NAVIGABLE_SCHEMES = frozenset({"http", "https", "data"})
FILE_SCHEME = "file"
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--hide-scrollbars",
]


def navigable_schemes(settings: Settings) -> frozenset:
    """URL schemes the browser may open directly; local files only when enabled."""
    if settings.allow_file_urls:
        return NAVIGABLE_SCHEMES | {FILE_SCHEME}
    return NAVIGABLE_SCHEMES


def to_navigation_target(document_source: str, schemes: frozenset = NAVIGABLE_SCHEMES) -> str:
    """
    Turn a URL or an inline HTML document into something the browser can open.

    Args:
        document_source: Absolute URL or raw HTML
        schemes: URL schemes passed through unchanged

    Returns:
        The URL itself, or the HTML encoded as a data URI
    """
    candidate = document_source.strip()
    if not candidate.startswith("<") and urlparse(candidate).scheme in schemes:
        return candidate
    return f"data:text/html;charset=utf-8,{quote(document_source)}"


class PageRenderer:
    """Render documents to PNG screenshots sized for the panel."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="page_renderer")

    @property
    def viewport(self) -> dict[str, int]:
        return {"width": self.settings.display_width, "height": self.settings.display_height}

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[Page, None]:
        """
        Launch an isolated browser and yield a page configured for the panel.

        Raises:
            SessionLaunchError: If Playwright or Chromium cannot be started
        """
        try:
            playwright = await async_playwright().start()
        except Exception as e:
            self.logger.error("Failed to start Playwright", error=str(e))
            raise SessionLaunchError(f"Playwright start failed: {e}") from e

        browser = None
        try:
            try:
                browser = await playwright.chromium.launch(
                    headless=self.settings.playwright_headless,
                    args=BROWSER_ARGS,
                )
                context = await browser.new_context(
                    viewport=self.viewport,
                    screen=self.viewport,
                    device_scale_factor=self.settings.device_scale_factor,
                    is_mobile=False,
                    has_touch=False,
                )
                page = await context.new_page()
            except PlaywrightError as e:
                self.logger.error("Failed to launch browser session", error=str(e))
                raise SessionLaunchError(f"Browser launch failed: {e}") from e

            page.set_default_timeout(self.settings.playwright_timeout)
            self.logger.debug("Browser session started", viewport=self.viewport)
            yield page
        finally:
            await self._teardown(playwright, browser)

    async def _teardown(self, playwright: Any, browser: Any) -> None:
        """Close the browser and stop Playwright, logging teardown failures."""
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                self.logger.warning("Browser close failed", error=str(e))
        try:
            await playwright.stop()
        except PlaywrightError as e:
            self.logger.warning("Playwright stop failed", error=str(e))
        self.logger.debug("Browser session closed")

    async def render(self, document_source: str) -> bytes:
        """
        Render a URL or inline HTML document and capture it as PNG.

        Args:
            document_source: Absolute URL or raw HTML

        Returns:
            PNG bytes exactly the size of the panel

        Raises:
            SessionLaunchError: If the browser cannot be started
            NavigationError: If loading fails or exceeds the render deadline
            CaptureError: If the screenshot fails or has the wrong size
        """
        target = to_navigation_target(document_source, navigable_schemes(self.settings))
        is_inline = target.startswith("data:")
        self.logger.info(
            "Rendering document",
            source="inline" if is_inline else target,
            source_length=len(document_source),
        )

        async with self.session() as page:
            await self._navigate(page, target)
            screenshot = await self._capture(page)

        self.logger.info("Document rendered", file_size=len(screenshot))
        return screenshot

    async def _navigate(self, page: Page, target: str) -> None:
        """Open the target and wait for the load event within the render deadline."""
        try:
            await asyncio.wait_for(
                page.goto(target, wait_until="load"),
                timeout=self.settings.render_timeout,
            )
        except asyncio.TimeoutError as e:
            raise NavigationError(
                f"Load event not observed within {self.settings.render_timeout}s"
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed: {e}") from e

    async def _capture(self, page: Page) -> bytes:
        """Take a viewport screenshot and check its dimensions."""
        try:
            screenshot = await page.screenshot(type="png", full_page=False)
        except PlaywrightError as e:
            raise CaptureError(f"Screenshot failed: {e}") from e

        try:
            with Image.open(io.BytesIO(screenshot)) as image:
                size = image.size
        except UnidentifiedImageError as e:
            raise CaptureError("Screenshot is not a decodable PNG") from e

        expected = (self.settings.display_width, self.settings.display_height)
        if size != expected:
            raise CaptureError(
                f"Screenshot is {size[0]}x{size[1]}, expected {expected[0]}x{expected[1]}"
            )

        return screenshot
