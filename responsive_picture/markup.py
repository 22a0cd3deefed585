"""HTML fragments for <picture>: attributes, <source> groups, fallback pick."""

import html
from typing import Mapping, Optional

from .config import DARK_MEDIA
from .errors import ConfigurationError, EncodingError
from .models import Derivative, EncodedSet


def stringify_attributes(attribute_map: Mapping[str, Optional[object]]) -> str:
    """
    Map attribute-value pairs to `name="value"` pairs joined by single spaces.
    None values are dropped entirely; everything else is HTML-escaped.
    """
    return " ".join(
        f'{attribute}="{html.escape(str(value), quote=True)}"'
        for attribute, value in attribute_map.items()
        if value is not None
    )


def get_largest_image(metadata: EncodedSet, image_format: str) -> Derivative:
    """Widest derivative of `image_format`; groups are ordered by ascending width."""
    try:
        images = metadata[image_format]
    except KeyError:
        raise ConfigurationError(
            f"Format {image_format!r} was not encoded (have: {', '.join(metadata) or 'none'})"
        ) from None
    if not images:
        raise EncodingError(image_format, "encoder returned no derivatives")
    return images[-1]


def _source_tag(images, sizes: str, media: Optional[str] = None) -> str:
    attributes = stringify_attributes({
        "type": images[0].source_type,
        "srcset": ", ".join(image.srcset for image in images),
        "sizes": sizes,
        "media": media,
    })
    return f"<source {attributes}>"


def build_source_string(images: EncodedSet, dark_images: Optional[EncodedSet], sizes: str) -> str:
    """
    One <source> per format group. Dark groups come first and carry the
    prefers-color-scheme media query: browsers take the first matching
    <source>, so an unconditional light source placed earlier would always win.
    """
    tags = [_source_tag(group, sizes, DARK_MEDIA) for group in (dark_images or {}).values()]
    tags += [_source_tag(group, sizes) for group in images.values()]
    return "\n".join(tags)
