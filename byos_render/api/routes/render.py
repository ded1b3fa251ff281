"""
Render Routes
=============

Trigger a render of a web page or template fragment and optionally make it the
current screen of a device.
"""

from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException

from byos_render.api.dependencies import (
    get_current_settings,
    get_device_repository,
    get_render_pipeline,
)
from byos_render.config.logging import get_logger
from byos_render.config.settings import Settings
from byos_render.core.devices.repository import DeviceRepository
from byos_render.core.display.format_selector import GENERATED_PREFIX
from byos_render.core.rendering.page_renderer import FILE_SCHEME
from byos_render.core.rendering.pipeline import RenderPipeline
from byos_render.models.schemas import ImageFormat, RenderRequest, RenderResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Rendering"])


@router.post("/render", response_model=RenderResponse)
async def render(
    request: RenderRequest,
    pipeline: RenderPipeline = Depends(get_render_pipeline),
    repository: DeviceRepository = Depends(get_device_repository),
    settings: Settings = Depends(get_current_settings),
) -> RenderResponse:
    """Render synchronously and return the URLs of the artifact pair."""
    if (
        request.url
        and urlparse(request.url).scheme == FILE_SCHEME
        and not settings.allow_file_urls
    ):
        raise HTTPException(status_code=422, detail="file:// URLs are disabled")

    if request.device_id and await repository.find_by_mac(request.device_id) is None:
        raise HTTPException(status_code=404, detail="Device not found")

    if request.url:
        rendered = await pipeline.render_url(request.url)
    else:
        rendered = await pipeline.render_template(
            request.template or "", request.data, layout=request.layout
        )

    if request.device_id:
        await repository.assign_screen_image(request.device_id, rendered.id)
        logger.info("Screen image assigned", mac_address=request.device_id, image_id=rendered.id)

    storage_url = f"{settings.base_url}/storage/{GENERATED_PREFIX}"
    return RenderResponse(
        image_id=rendered.id,
        png_url=f"{storage_url}/{rendered.path_for(ImageFormat.PNG).name}",
        bmp_url=f"{storage_url}/{rendered.path_for(ImageFormat.BMP).name}",
    )
