"""Variant transformation options and the fixed preset table."""

import types
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final, final

from server.apps.files.exceptions import InvalidRequestError

DEFAULT_FORMAT: Final = 'webp'

# Output format -> Content-Type of the encoded bytes
FORMAT_CONTENT_TYPES: Final = types.MappingProxyType({
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
    'avif': 'image/avif',
    'tiff': 'image/tiff',
    'gif': 'image/gif',
})

_QUALITY_RANGE: Final = (1, 100)
_BLUR_RANGE: Final = (0.3, 1000.0)
_ROTATE_RANGE: Final = (-360.0, 360.0)


@final
@dataclass(frozen=True, slots=True)
class VariantOptions:
    """Transformation applied to produce one derived asset.

    Attributes:
        width: Target width in pixels.
        height: Target height in pixels.
        format: Output format, one of ``FORMAT_CONTENT_TYPES``.
        quality: Encoder quality 1-100, encoder default when None.
        crop: Cover the width x height box instead of fitting inside it.
        grayscale: Convert to grayscale.
        blur: Gaussian blur radius.
        rotate: Clockwise rotation in degrees.
    """

    width: int | None = None
    height: int | None = None
    format: str = DEFAULT_FORMAT
    quality: int | None = None
    crop: bool = False
    grayscale: bool = False
    blur: float | None = None
    rotate: float | None = None

    def validate(self) -> None:
        """Check option values.

        Raises:
            InvalidRequestError: If any value is out of range.
        """
        for dimension in (self.width, self.height):
            if dimension is not None and dimension <= 0:
                raise InvalidRequestError('Width and height must be positive')
        if self.format not in FORMAT_CONTENT_TYPES:
            raise InvalidRequestError(f'Unsupported format: {self.format}')
        _check_range('quality', self.quality, _QUALITY_RANGE)
        _check_range('blur', self.blur, _BLUR_RANGE)
        _check_range('rotate', self.rotate, _ROTATE_RANGE)

    @property
    def content_type(self) -> str:
        """Content-Type of the encoded output."""
        return FORMAT_CONTENT_TYPES[self.format]

    def to_dict(self) -> dict[str, Any]:
        """Convert options to a JSON-safe dict, omitting unset values."""
        data: dict[str, Any] = {'format': self.format}
        for name in ('width', 'height', 'quality', 'blur', 'rotate'):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        for flag in ('crop', 'grayscale'):
            if getattr(self, flag):
                data[flag] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'VariantOptions':
        """Create options from a job payload or request body.

        Raises:
            InvalidRequestError: If a value has the wrong type.
        """
        try:
            return cls(
                width=_optional(int, data.get('width')),
                height=_optional(int, data.get('height')),
                format=str(data.get('format') or DEFAULT_FORMAT).lower(),
                quality=_optional(int, data.get('quality')),
                crop=bool(data.get('crop', False)),
                grayscale=bool(data.get('grayscale', False)),
                blur=_optional(float, data.get('blur')),
                rotate=_optional(float, data.get('rotate')),
            )
        except (TypeError, ValueError) as error:
            raise InvalidRequestError(f'Invalid variant options: {error}') from error


PRESETS: Final = types.MappingProxyType({
    'thumbnail': VariantOptions(width=150, height=150, quality=80),
    'small': VariantOptions(width=320, quality=80),
    'medium': VariantOptions(width=640, quality=80),
    'large': VariantOptions(width=1280, quality=80),
})


def get_preset(name: str) -> VariantOptions:
    """Look up a preset by name.

    Args:
        name: Preset name.

    Returns:
        Preset options.

    Raises:
        InvalidRequestError: If the preset is unknown.
    """
    try:
        return PRESETS[name]
    except KeyError as error:
        raise InvalidRequestError(f'Unknown preset: {name}') from error


def _optional(cast: type, value: Any) -> Any:  # noqa: WPS110
    if value is None:
        return None
    return cast(value)


def _check_range(
    name: str,
    value: float | None,
    bounds: tuple[float, float],
) -> None:
    if value is None:
        return
    low, high = bounds
    if not low <= value <= high:
        raise InvalidRequestError(
            f'{name} must be between {low} and {high}, got {value}',
        )
