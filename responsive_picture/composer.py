"""
Compose <picture> markup from encoder output.

Both composers are stateless: every call resolves, encodes and renders from
scratch, and either returns the complete element or raises. Collaborator
failures are mapped onto the PictureError taxonomy here so that callers only
ever have to catch one family of exceptions.
"""

import concurrent.futures as cf
import logging
from typing import Callable, List, Optional, Sequence, TypeVar

from .config import AUTO_WIDTH, PictureConfig
from .errors import ConfigurationError, EncodingError, PictureError, ResolutionError
from .markup import build_source_string, get_largest_image, stringify_attributes
from .models import (
    AnimatedImageRequest,
    Dimensions,
    EncodedSet,
    Encoder,
    ImageRequest,
    Probe,
    Width,
)
from .references import input_from_src

logger = logging.getLogger(__name__)

T = TypeVar("T")


def validate_widths(widths: Optional[Sequence[Width]]) -> List[Width]:
    """Reject non-positive or non-integer widths before anything is encoded."""
    if widths is None:
        return [AUTO_WIDTH]
    if not isinstance(widths, (list, tuple)):
        raise ConfigurationError(f"widths must be a list, got {widths!r}")
    if not widths:
        return [AUTO_WIDTH]
    out: List[Width] = []
    for w in widths:
        if w == AUTO_WIDTH:
            out.append(w)
        elif isinstance(w, int) and not isinstance(w, bool) and w > 0:
            out.append(w)
        else:
            raise ConfigurationError(f"Invalid width {w!r}: widths must be positive integers or {AUTO_WIDTH!r}")
    return out


def _call_collaborator(src: str, fn: Callable[[], T]) -> T:
    try:
        return fn()
    except PictureError:
        raise
    except FileNotFoundError as e:
        raise ResolutionError(src, e.strerror) from e
    except OSError as e:
        raise EncodingError(src, str(e)) from e


def _encode(
    encoder: Encoder,
    src: str,
    widths: Sequence[Width],
    formats: Sequence[str],
    config: PictureConfig,
    animated: bool = False,
) -> EncodedSet:
    logger.debug("Encoding %s as %s at %s", src, list(formats), list(widths))
    return _call_collaborator(src, lambda: encoder.encode(
        src,
        widths=widths,
        formats=formats,
        output_dir=config.output_dir,
        url_path=config.url_path,
        animated=animated,
    ))


def _img_tag(src: str, width: int, height: int, alt: str) -> str:
    attributes = stringify_attributes({
        "src": src,
        "width": width,
        "height": height,
        "alt": alt,
        "loading": "lazy",
        "decoding": "async",
    })
    return f"<img {attributes}>"


def _picture(sources: str, img: str, class_name: Optional[str] = None) -> str:
    attributes = stringify_attributes({"class": class_name})
    open_tag = f"<picture {attributes}>" if attributes else "<picture>"
    return "\n".join([open_tag, sources, img, "</picture>"])


def compose_static(
    request: ImageRequest,
    page_input_path: str,
    encoder: Encoder,
    config: Optional[PictureConfig] = None,
) -> str:
    """
    <picture> for a still image in every configured format, light sources as
    the default and dark sources (if any) gated on prefers-color-scheme.
    The fallback <img> is always the widest light rendition of the first format.
    """
    config = config or PictureConfig()
    widths = validate_widths(request.widths)
    formats = list(config.formats)

    light_src = input_from_src(request.src, page_input_path)
    dark_src = input_from_src(request.dark_src, page_input_path) if request.dark_src else None

    with cf.ThreadPoolExecutor(max_workers=2) as ex:
        light_future = ex.submit(_encode, encoder, light_src, widths, formats, config)
        dark_future = ex.submit(_encode, encoder, dark_src, widths, formats, config) if dark_src else None
        metadata = light_future.result()
        dark_metadata = dark_future.result() if dark_future else {}

    sources = build_source_string(metadata, dark_metadata, request.sizes)
    largest = get_largest_image(metadata, formats[0])
    img = _img_tag(largest.url, largest.width, largest.height, request.alt)

    logger.debug("Composed picture for %s (%d formats, dark=%s)", light_src, len(formats), bool(dark_src))
    return _picture(sources, img)


def compose_animated(
    request: AnimatedImageRequest,
    page_input_path: str,
    encoder: Encoder,
    probe: Probe,
    config: Optional[PictureConfig] = None,
) -> str:
    """
    <picture> for a looping image in the single animation format.

    The encoder only reports the resized dimensions, so the <img> width and
    height come from probing the original instead.
    """
    config = config or PictureConfig()
    widths = validate_widths(request.widths)
    src = input_from_src(request.src, page_input_path)

    dims: Dimensions = _call_collaborator(src, lambda: probe.probe(src))
    metadata = _encode(encoder, src, widths, [config.animated_format], config, animated=True)

    sources = build_source_string(metadata, None, request.sizes)
    largest = get_largest_image(metadata, config.animated_format)
    img = _img_tag(largest.url, dims.width, dims.height, request.alt)

    logger.debug("Composed animated picture for %s (%dx%d)", src, dims.width, dims.height)
    return _picture(sources, img, request.class_name)
