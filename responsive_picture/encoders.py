"""
Default encoder/probe collaborators backed by Pillow.

- Every requested width is rendered once per requested format.
- Widths never upscale: anything wider than the original is clamped to it,
  and "auto" means the original width.
- Output files are named {stem}-{hash}-{width}.{ext}; the hash is taken over
  the source bytes, so a dark variant never overwrites its light twin.
- Animated sources keep every frame only when asked to (animated=True).
- Remote URLs are rejected; fetching is left to the caller.
"""

import hashlib
import io
import logging
from pathlib import Path
from typing import List, Sequence, Tuple

from PIL import Image, ImageSequence

from .config import AUTO_WIDTH, mime_type_for
from .errors import EncodingError, ResolutionError
from .models import Derivative, Dimensions, EncodedSet, Width
from .references import is_full_url

logger = logging.getLogger(__name__)

LOSSY_FORMATS = {"jpeg", "webp", "avif"}
ANIMATION_FORMATS = {"webp", "avif", "gif", "png"}
HASH_LENGTH = 10


def variant_name(stem: str, digest: str, width: int, image_format: str) -> str:
    return f"{stem}-{digest}-{width}.{image_format}"


def has_alpha(im: Image.Image) -> bool:
    return ("A" in im.mode) or (im.info.get("transparency") is not None)


def is_animated(im: Image.Image) -> bool:
    return getattr(im, "is_animated", False) and getattr(im, "n_frames", 1) > 1


def target_widths(widths: Sequence[Width], original_width: int) -> List[int]:
    """Concrete, ascending, de-duplicated pixel widths for one source."""
    out = set()
    for w in widths:
        if w == AUTO_WIDTH:
            out.add(original_width)
        else:
            out.add(min(int(w), original_width))
    return sorted(out)


def scaled_height(original_width: int, original_height: int, width: int) -> int:
    return max(1, round(original_height * width / original_width))


def _read_source(src: str) -> bytes:
    if is_full_url(src):
        raise EncodingError(src, "remote sources are not fetched")
    try:
        return Path(src).read_bytes()
    except FileNotFoundError:
        raise ResolutionError(src, "file does not exist") from None
    except IsADirectoryError:
        raise ResolutionError(src, "is a directory") from None
    except OSError as e:
        raise EncodingError(src, str(e)) from e


def _open(src: str, data: bytes) -> Image.Image:
    try:
        im = Image.open(io.BytesIO(data))
        im.load()
    except OSError as e:
        raise EncodingError(src, f"not a readable image: {e}") from e
    return im


def _prepare_frame(frame: Image.Image, size: Tuple[int, int], image_format: str) -> Image.Image:
    if image_format == "jpeg" or not has_alpha(frame):
        frame = frame.convert("RGB")
    else:
        frame = frame.convert("RGBA")
    if frame.size != size:
        frame = frame.resize(size, Image.Resampling.LANCZOS)
    return frame


class PillowEncoder:
    def __init__(self, quality: int = 80) -> None:
        self.quality = quality

    def _save_options(self, image_format: str) -> dict:
        if image_format in LOSSY_FORMATS:
            return {"quality": self.quality}
        return {}

    def _write(self, im: Image.Image, dst: Path, size: Tuple[int, int], image_format: str, keep_frames: bool) -> None:
        options = self._save_options(image_format)
        if keep_frames and image_format in ANIMATION_FORMATS:
            im.seek(0)
            loop = im.info.get("loop", 0)
            frames, durations = [], []
            for frame in ImageSequence.Iterator(im):
                frames.append(_prepare_frame(frame, size, image_format))
                durations.append(frame.info.get("duration", 100))
            options.update(
                save_all=True,
                append_images=frames[1:],
                duration=durations,
                loop=loop,
            )
            first = frames[0]
        else:
            im.seek(0)
            first = _prepare_frame(im, size, image_format)
        first.save(dst, format=image_format.upper(), **options)

    def encode(
        self,
        src: str,
        widths: Sequence[Width],
        formats: Sequence[str],
        output_dir: str,
        url_path: str = "/img/",
        animated: bool = False,
    ) -> EncodedSet:
        data = _read_source(src)
        digest = hashlib.sha1(data).hexdigest()[:HASH_LENGTH]
        stem = Path(src).stem
        out_dir = Path(output_dir)
        metadata: EncodedSet = {}

        with _open(src, data) as im:
            original_width, original_height = im.size
            keep_frames = animated and is_animated(im)
            sizes = [(w, scaled_height(original_width, original_height, w))
                     for w in target_widths(widths, original_width)]
            try:
                out_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise EncodingError(src, f"cannot create {out_dir}: {e}") from e

            for image_format in formats:
                source_type = mime_type_for(image_format)
                group: List[Derivative] = []
                for width, height in sizes:
                    filename = variant_name(stem, digest, width, image_format)
                    try:
                        self._write(im, out_dir / filename, (width, height), image_format, keep_frames)
                    except (OSError, KeyError, ValueError) as e:
                        raise EncodingError(src, f"{image_format} at {width}w failed: {e}") from e
                    url = url_path + filename
                    group.append(Derivative(
                        url=url,
                        width=width,
                        height=height,
                        srcset=f"{url} {width}w",
                        source_type=source_type,
                    ))
                metadata[image_format] = group
                logger.debug("DONE  %s -> %s %s", src, image_format, [f"{w}w" for w, _ in sizes])

        return metadata


class PillowProbe:
    def probe(self, src: str) -> Dimensions:
        data = _read_source(src)
        with _open(src, data) as im:
            width, height = im.size
        logger.debug("Probed %s: %dx%d", src, width, height)
        return Dimensions(width=width, height=height)
