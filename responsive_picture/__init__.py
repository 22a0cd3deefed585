"""Responsive <picture> markup for static sites: AVIF/WebP/JPEG sources, dark-mode variants, animated images."""

from .composer import compose_animated, compose_static, validate_widths
from .config import PictureConfig, load_config
from .encoders import PillowEncoder, PillowProbe
from .errors import ConfigurationError, EncodingError, PictureError, ResolutionError
from .markup import build_source_string, get_largest_image, stringify_attributes
from .models import AnimatedImageRequest, Derivative, Dimensions, EncodedSet, Encoder, ImageRequest, Probe
from .references import input_from_src, is_full_url
from .shortcodes import Shortcodes

__version__ = "0.1.0"

__all__ = [
    "AnimatedImageRequest",
    "ConfigurationError",
    "Derivative",
    "Dimensions",
    "EncodedSet",
    "Encoder",
    "EncodingError",
    "ImageRequest",
    "PictureConfig",
    "PictureError",
    "PillowEncoder",
    "PillowProbe",
    "Probe",
    "ResolutionError",
    "Shortcodes",
    "build_source_string",
    "compose_animated",
    "compose_static",
    "get_largest_image",
    "input_from_src",
    "is_full_url",
    "load_config",
    "stringify_attributes",
    "validate_widths",
]
