"""Value types shared by the composers and their collaborators."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Union

from .config import DEFAULT_SIZES, DEFAULT_WIDTHS

Width = Union[int, str]  # a positive pixel width or "auto"


@dataclass(frozen=True)
class Derivative:
    """One encoded rendition of a source image."""

    url: str
    width: int
    height: int
    srcset: str
    source_type: str


# format -> derivatives in ascending width; insertion order is preference order
EncodedSet = Dict[str, List[Derivative]]


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int


@dataclass(frozen=True)
class ImageRequest:
    src: str
    alt: str
    dark_src: Optional[str] = None
    sizes: str = DEFAULT_SIZES
    widths: Optional[Sequence[Width]] = DEFAULT_WIDTHS


@dataclass(frozen=True)
class AnimatedImageRequest:
    src: str
    alt: str
    sizes: str = DEFAULT_SIZES
    widths: Optional[Sequence[Width]] = DEFAULT_WIDTHS
    class_name: Optional[str] = None


class Encoder(Protocol):
    def encode(
        self,
        src: str,
        widths: Sequence[Width],
        formats: Sequence[str],
        output_dir: str,
        url_path: str = "/img/",
        animated: bool = False,
    ) -> EncodedSet:
        ...


class Probe(Protocol):
    def probe(self, src: str) -> Dimensions:
        ...
