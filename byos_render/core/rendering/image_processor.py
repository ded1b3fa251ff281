"""
Image Processor
===============

Reduce captured screenshots to the two-level raster an e-ink panel can show and
persist them as an artifact pair: a packed 1-bit BMP and a 1-bit PNG of the same
dithered pixels, both named after a fresh identifier.

Conversion is pluggable. The in-process Pillow converter is the default; the
ImageMagick converter shells out to ``magick`` and is kept for parity with
installations that already depend on it.
"""

from typing import Any, Dict, Optional, Type
from abc import ABC, abstractmethod
from pathlib import Path
import asyncio
import io

from PIL import Image, UnidentifiedImageError

from byos_render.config.logging import get_logger
from byos_render.config.settings import Settings, get_settings
from byos_render.core.errors import (
    ArtifactWriteError,
    ConversionError,
    DecodeError,
)
from byos_render.models.schemas import RenderedImage

logger = get_logger(__name__)

WHITE = (255, 255, 255)


def decode_screenshot(raw_image_bytes: bytes) -> Image.Image:
    """
    Decode raw bytes into an RGB image, flattening transparency onto white.

    Raises:
        DecodeError: If the bytes are not a supported raster
    """
    try:
        image = Image.open(io.BytesIO(raw_image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Unable to decode captured image: {e}") from e

    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background

    return image.convert("RGB")


def dither_to_monochrome(image: Image.Image) -> Image.Image:
    """Convert to ITU-R 601-2 luma grayscale, then Floyd-Steinberg dither to 1 bit."""
    grayscale = image.convert("L")
    return grayscale.convert("1", dither=Image.Dither.FLOYDSTEINBERG)


class ImageConverter(ABC):
    """Writes the artifact pair for a decoded screenshot."""

    name = "abstract"

    @abstractmethod
    async def convert(self, image: Image.Image, rendered: RenderedImage) -> None:
        """Write ``rendered.bmp_path`` and ``rendered.png_path`` from ``image``."""
        pass


class PillowImageConverter(ImageConverter):
    """In-process grayscale and dither conversion with Pillow."""

    name = "pillow"

    async def convert(self, image: Image.Image, rendered: RenderedImage) -> None:
        worker = asyncio.ensure_future(asyncio.to_thread(self._convert_sync, image, rendered))
        try:
            await asyncio.shield(worker)
        except asyncio.CancelledError:
            # A running save cannot be interrupted; let it land before the caller discards
            await asyncio.wait({worker})
            raise

    def _convert_sync(self, image: Image.Image, rendered: RenderedImage) -> None:
        try:
            monochrome = dither_to_monochrome(image)
        except (ValueError, OSError) as e:
            raise ConversionError(f"Pixel conversion failed: {e}") from e

        try:
            monochrome.save(rendered.bmp_path, format="BMP")
            monochrome.save(rendered.png_path, format="PNG", optimize=True)
        except OSError as e:
            raise ArtifactWriteError(f"Failed to write artifact: {e}") from e


class MagickImageConverter(ImageConverter):
    """Conversion through the ImageMagick command line tool."""

    name = "magick"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="magick_converter")

    def build_command(self, rendered: RenderedImage) -> list[str]:
        return [
            self.settings.magick_binary,
            "png:-",
            "-monochrome",
            "-depth",
            "1",
            "-strip",
            "-write",
            f"bmp3:{rendered.bmp_path}",
            f"png:{rendered.png_path}",
        ]

    async def convert(self, image: Image.Image, rendered: RenderedImage) -> None:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        command = self.build_command(rendered)

        self.logger.debug("Running ImageMagick", command=" ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ConversionError(f"Unable to start {self.settings.magick_binary}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(buffer.getvalue()),
                timeout=self.settings.conversion_timeout,
            )
        except asyncio.TimeoutError as e:
            await self._kill(process)
            raise ConversionError(
                f"ImageMagick did not finish within {self.settings.conversion_timeout}s"
            ) from e
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        if process.returncode != 0:
            diagnostic = stderr.decode("utf-8", errors="replace").strip()
            self.logger.error(
                "ImageMagick failed", returncode=process.returncode, diagnostic=diagnostic
            )
            raise ConversionError(
                f"ImageMagick exited with status {process.returncode}", diagnostic=diagnostic
            )

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Kill the converter and reap it so nothing writes after the caller discards."""
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
        self.logger.warning("ImageMagick killed", pid=process.pid)


class ImageConverterFactory:
    """Factory for creating image converters."""

    _converters: Dict[str, Type[ImageConverter]] = {
        "pillow": PillowImageConverter,
        "magick": MagickImageConverter,
    }

    @classmethod
    def create_converter(
        cls, converter_type: str = "pillow", settings: Optional[Settings] = None
    ) -> ImageConverter:
        """
        Create image converter instance.

        Raises:
            ValueError: If converter type is not supported
        """
        if converter_type not in cls._converters:
            raise ValueError(f"Unsupported converter type: {converter_type}")

        converter_cls = cls._converters[converter_type]
        if converter_cls is MagickImageConverter:
            return MagickImageConverter(settings)
        return converter_cls()


class ImageProcessor:
    """Turn captured screenshots into persisted artifact pairs."""

    def __init__(
        self,
        converter: Optional[ImageConverter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.converter = converter or ImageConverterFactory.create_converter(
            self.settings.image_converter, self.settings
        )
        self.output_dir: Path = self.settings.generated_path
        self.logger: Any = logger.bind(component="image_processor", converter=self.converter.name)

    async def process(self, raw_image_bytes: bytes) -> RenderedImage:
        """
        Dither a screenshot and persist the BMP/PNG pair.

        Args:
            raw_image_bytes: Encoded screenshot (PNG from the renderer)

        Returns:
            RenderedImage referencing both written artifacts

        Raises:
            DecodeError: If the bytes cannot be decoded
            ConversionError: If dimensions are wrong or conversion fails
            ArtifactWriteError: If the output directory or files cannot be written
        """
        image = decode_screenshot(raw_image_bytes)
        self._check_dimensions(image)

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactWriteError(f"Cannot create {self.output_dir}: {e}") from e

        rendered = RenderedImage.allocate(self.output_dir)
        try:
            await self.converter.convert(image, rendered)
            self._check_artifacts(rendered)
        except BaseException as e:
            self._discard(rendered)
            if isinstance(e, OSError):
                raise ArtifactWriteError(f"Failed to write artifact: {e}") from e
            raise

        self.logger.info(
            "Artifacts written",
            image_id=rendered.id,
            bmp_size=rendered.bmp_path.stat().st_size,
            png_size=rendered.png_path.stat().st_size,
        )
        return rendered

    def _check_dimensions(self, image: Image.Image) -> None:
        expected = (self.settings.display_width, self.settings.display_height)
        if image.size != expected:
            raise ConversionError(
                f"Image is {image.size[0]}x{image.size[1]}, expected {expected[0]}x{expected[1]}"
            )

    def _check_artifacts(self, rendered: RenderedImage) -> None:
        missing = [p for p in (rendered.bmp_path, rendered.png_path) if not p.is_file()]
        if missing:
            raise ArtifactWriteError(
                "Converter did not produce: " + ", ".join(str(p) for p in missing)
            )

    def _discard(self, rendered: RenderedImage) -> None:
        """Remove whatever part of the pair was written."""
        for path in (rendered.bmp_path, rendered.png_path):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                self.logger.warning("Failed to remove partial artifact", path=str(path), error=str(e))
        self.logger.debug("Discarded partial artifacts", image_id=rendered.id)
