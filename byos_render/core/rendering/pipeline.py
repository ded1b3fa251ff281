"""
Render Pipeline
===============

Compose, capture and convert in one call, applying the retry policy for
transient browser failures.

Browser launch failures are retried with exponential backoff. Navigation and
capture failures get a fresh session for a limited number of retries. Template,
decode, conversion and write failures are deterministic and propagate at once.
"""

from typing import Any, Mapping, Optional

from byos_render.config.logging import get_logger
from byos_render.config.settings import Settings, get_settings
from byos_render.core.errors import CaptureError, NavigationError, SessionLaunchError
from byos_render.core.retry import retry_async
from byos_render.core.rendering.image_processor import ImageProcessor
from byos_render.core.rendering.page_renderer import PageRenderer
from byos_render.core.rendering.template_composer import DEFAULT_LAYOUT, TemplateComposer
from byos_render.models.schemas import RenderedImage

logger = get_logger(__name__)


class RenderPipeline:
    """TemplateComposer -> PageRenderer -> ImageProcessor."""

    def __init__(
        self,
        composer: Optional[TemplateComposer] = None,
        renderer: Optional[PageRenderer] = None,
        processor: Optional[ImageProcessor] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.composer = composer or TemplateComposer(settings=self.settings)
        self.renderer = renderer or PageRenderer(self.settings)
        self.processor = processor or ImageProcessor(settings=self.settings)
        self.logger: Any = logger.bind(component="render_pipeline")

    async def render_url(self, url: str) -> RenderedImage:
        """Render an external page into an artifact pair."""
        self.logger.info("Render requested", source="url", url=url)
        return await self._render(url)

    async def render_template(
        self,
        fragment: str,
        data: Optional[Mapping[str, Any]] = None,
        layout: str = DEFAULT_LAYOUT,
    ) -> RenderedImage:
        """Compose a fragment into a layout and render it into an artifact pair."""
        self.logger.info("Render requested", source="template", layout=layout)
        document = self.composer.compose(layout, fragment, data or {})
        return await self._render(document)

    async def _render(self, document_source: str) -> RenderedImage:
        screenshot = await self.capture(document_source)
        rendered = await self.processor.process(screenshot)
        self.logger.info("Render completed", image_id=rendered.id)
        return rendered

    async def capture(self, document_source: str) -> bytes:
        """Capture a screenshot, retrying launch and navigation failures."""

        async def launch_with_backoff() -> bytes:
            return await retry_async(
                lambda: self.renderer.render(document_source),
                retry_on=(SessionLaunchError,),
                max_retries=self.settings.launch_retries,
                backoff=self.settings.launch_backoff,
                max_backoff=self.settings.max_backoff,
                operation="browser_launch",
            )

        return await retry_async(
            launch_with_backoff,
            retry_on=(NavigationError, CaptureError),
            max_retries=self.settings.navigation_retries,
            operation="page_capture",
        )
