"""Errors raised while composing <picture> markup."""

from typing import Optional


class PictureError(Exception):
    """Base class for every failure surfaced by responsive_picture."""


class ResolutionError(PictureError):
    """A source reference did not resolve to an existing image."""

    def __init__(self, path: str, reason: Optional[str] = None) -> None:
        self.path = path
        message = f"Could not resolve image source: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class EncodingError(PictureError):
    """The encoder could not produce a requested format/width combination."""

    def __init__(self, src: str, reason: str) -> None:
        self.src = src
        super().__init__(f"Could not encode {src}: {reason}")


class ConfigurationError(PictureError, ValueError):
    """Bad widths, formats or settings, detected before encoding where possible."""
