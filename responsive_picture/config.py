"""
Composer settings.

Policy constants live at module level so they can be tuned without touching
the composers. PictureConfig gathers the per-site values; load_config layers
them as defaults -> optional JSON file -> environment.

Example JSON (picture.json):
  {
    "output_dir": "_site/img",
    "url_path": "/img/",
    "formats": ["avif", "webp", "jpeg"],
    "threads": 4
  }
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Most efficient first; the browser takes the first <source> it supports.
FORMATS: Tuple[str, ...] = ("avif", "webp", "jpeg")
ANIMATED_FORMAT = "webp"
DEFAULT_WIDTHS: Tuple[int, ...] = (400, 800)
DEFAULT_SIZES = "100vw"
AUTO_WIDTH = "auto"
DARK_MEDIA = "(prefers-color-scheme: dark)"

MIME_TYPES = {
    "avif": "image/avif",
    "webp": "image/webp",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
}

OUTPUT_DIR_ENV = "PICTURE_OUTPUT_DIR"
URL_PATH_ENV = "PICTURE_URL_PATH"


def mime_type_for(image_format: str) -> str:
    try:
        return MIME_TYPES[image_format]
    except KeyError:
        raise ConfigurationError(f"Unknown image format: {image_format!r}") from None


def _ensure_url_path(url_path: str) -> str:
    """Normalise a public URL prefix to the /.../ form."""
    if not url_path.startswith(("/", "http://", "https://")):
        url_path = "/" + url_path
    if not url_path.endswith("/"):
        url_path += "/"
    return url_path


@dataclass(frozen=True)
class PictureConfig:
    output_dir: str = os.path.join("_site", "img")
    url_path: str = "/img/"
    formats: Tuple[str, ...] = FORMATS
    animated_format: str = ANIMATED_FORMAT
    threads: int = field(default_factory=lambda: os.cpu_count() or 4)
    quality: int = 80

    def __post_init__(self) -> None:
        if not self.formats:
            raise ConfigurationError("At least one output format is required")
        for fmt in (*self.formats, self.animated_format):
            mime_type_for(fmt)
        if self.threads < 1:
            raise ConfigurationError(f"threads must be >= 1, got {self.threads}")
        if not 1 <= self.quality <= 100:
            raise ConfigurationError(f"quality must be within 1..100, got {self.quality}")
        object.__setattr__(self, "formats", tuple(self.formats))
        object.__setattr__(self, "url_path", _ensure_url_path(self.url_path))

    def with_overrides(self, **overrides) -> "PictureConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def load_config(json_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> PictureConfig:
    """Build a PictureConfig from defaults, an optional JSON file and the environment."""
    environ = os.environ if environ is None else environ
    values = {}

    if json_path is not None:
        json_path = Path(json_path)
        try:
            data = json.loads(json_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {json_path}") from None
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {json_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{json_path} must contain a JSON object")
        known = {f.name for f in fields(PictureConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config keys in {json_path}: {', '.join(unknown)}")
        values.update(data)
        logger.debug("Loaded picture config from %s", json_path)

    if environ.get(OUTPUT_DIR_ENV):
        values["output_dir"] = environ[OUTPUT_DIR_ENV]
    if environ.get(URL_PATH_ENV):
        values["url_path"] = environ[URL_PATH_ENV]

    try:
        return PictureConfig(**values)
    except TypeError as e:
        raise ConfigurationError(f"Invalid picture config: {e}") from e
