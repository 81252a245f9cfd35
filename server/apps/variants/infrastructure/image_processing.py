"""Image transformation with Pillow.

Steps always run in the same order: resize, grayscale, blur, rotate,
encode.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Final, final

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from server.apps.files.exceptions import InvalidRequestError
from server.apps.variants.presets import VariantOptions

logger = logging.getLogger(__name__)

# Pillow encoder names
_PIL_FORMATS: Final = {
    'jpeg': 'JPEG',
    'png': 'PNG',
    'webp': 'WEBP',
    'avif': 'AVIF',
    'tiff': 'TIFF',
    'gif': 'GIF',
}
_QUALITY_FORMATS: Final = frozenset(('jpeg', 'webp', 'avif'))
_JPEG_MODES: Final = frozenset(('RGB', 'L', 'CMYK'))


@final
@dataclass(frozen=True, slots=True)
class RenderedImage:
    """Encoded output of one transformation."""

    content: bytes = field(repr=False)
    width: int
    height: int
    format: str

    @property
    def size_bytes(self) -> int:
        """Encoded size."""
        return len(self.content)


def render_variant(source: bytes, options: VariantOptions) -> RenderedImage:
    """Apply ``options`` to an encoded source image.

    Args:
        source: Encoded source image bytes.
        options: Transformation to apply.

    Returns:
        The encoded result and its dimensions.

    Raises:
        InvalidRequestError: If the source is not a decodable image
            or the format cannot be encoded.
    """
    try:
        with Image.open(io.BytesIO(source)) as opened:
            opened.load()
            image = ImageOps.exif_transpose(opened)
    except (UnidentifiedImageError, OSError) as error:
        raise InvalidRequestError('Source is not a decodable image') from error

    image = _resize(image, options)
    if options.grayscale:
        image = ImageOps.grayscale(image)
    if options.blur:
        image = image.filter(ImageFilter.GaussianBlur(radius=options.blur))
    if options.rotate:
        # Pillow rotates counter-clockwise
        image = image.rotate(-options.rotate, expand=True)

    content = _encode(image, options)
    return RenderedImage(
        content=content,
        width=image.width,
        height=image.height,
        format=options.format,
    )


def _resize(image: Image.Image, options: VariantOptions) -> Image.Image:
    if options.width is None and options.height is None:
        return image

    if options.crop and options.width and options.height:
        # Cover the box, never enlarging beyond the source
        box = (
            min(options.width, image.width),
            min(options.height, image.height),
        )
        return ImageOps.fit(image, box, method=Image.Resampling.LANCZOS)

    # Fit inside the box; thumbnail() never enlarges
    resized = image.copy()
    resized.thumbnail(
        (options.width or image.width, options.height or image.height),
        Image.Resampling.LANCZOS,
    )
    return resized


def _encode(image: Image.Image, options: VariantOptions) -> bytes:
    pil_format = _PIL_FORMATS[options.format]
    save_kwargs: dict[str, int] = {}
    if options.quality is not None and options.format in _QUALITY_FORMATS:
        save_kwargs['quality'] = options.quality

    if options.format == 'jpeg' and image.mode not in _JPEG_MODES:
        image = image.convert('RGB')

    buffer = io.BytesIO()
    try:
        image.save(buffer, format=pil_format, **save_kwargs)
    except (KeyError, OSError) as error:
        logger.warning('Cannot encode %s: %s', options.format, error)
        raise InvalidRequestError(
            f'Cannot encode image as {options.format}',
        ) from error
    return buffer.getvalue()
