import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from responsive_picture.config import AUTO_WIDTH, PictureConfig, mime_type_for
from responsive_picture.models import Derivative, Dimensions, EncodedSet

AUTO_PIXELS = 1200


def fake_height(width: int) -> int:
    return round(width * 2 / 3)


class FakeEncoder:
    """Deterministic encoder: /img/{stem}-{width}.{format}, 3:2 aspect, no disk access."""

    def __init__(self, missing: Sequence[str] = (), error: Optional[Exception] = None) -> None:
        self.missing = set(missing)
        self.error = error
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def encode(self, src, widths, formats, output_dir, url_path="/img/", animated=False) -> EncodedSet:
        with self._lock:
            self.calls.append({
                "src": src,
                "widths": list(widths),
                "formats": list(formats),
                "output_dir": output_dir,
                "url_path": url_path,
                "animated": animated,
            })
        if src in self.missing:
            raise FileNotFoundError(2, "No such file or directory", src)
        if self.error is not None:
            raise self.error
        stem = Path(src).stem
        pixels = sorted({AUTO_PIXELS if w == AUTO_WIDTH else w for w in widths})
        metadata: Dict[str, List[Derivative]] = {}
        for fmt in formats:
            group = []
            for w in pixels:
                url = f"{url_path}{stem}-{w}.{fmt}"
                group.append(Derivative(
                    url=url,
                    width=w,
                    height=fake_height(w),
                    srcset=f"{url} {w}w",
                    source_type=mime_type_for(fmt),
                ))
            metadata[fmt] = group
        return metadata


class FakeProbe:
    def __init__(self, width: int = 600, height: int = 400, missing: Sequence[str] = ()) -> None:
        self.dims = Dimensions(width=width, height=height)
        self.missing = set(missing)
        self.calls: List[str] = []

    def probe(self, src: str) -> Dimensions:
        self.calls.append(src)
        if src in self.missing:
            raise FileNotFoundError(2, "No such file or directory", src)
        return self.dims


@pytest.fixture
def encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def config(tmp_path: Path) -> PictureConfig:
    return PictureConfig(output_dir=str(tmp_path / "img"), url_path="/img/", threads=4)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PICTURE_OUTPUT_DIR", raising=False)
    monkeypatch.delenv("PICTURE_URL_PATH", raising=False)
