import threading

import pytest

from responsive_picture.composer import compose_animated, compose_static, validate_widths
from responsive_picture.config import PictureConfig
from responsive_picture.errors import ConfigurationError, EncodingError, ResolutionError
from responsive_picture.models import AnimatedImageRequest, ImageRequest
from tests.conftest import FakeEncoder, FakeProbe

PAGE = "/site/posts/x.md"

EXPECTED_LIGHT_ONLY = "\n".join([
    "<picture>",
    '<source type="image/avif" srcset="/img/cat-400.avif 400w, /img/cat-800.avif 800w" sizes="100vw">',
    '<source type="image/webp" srcset="/img/cat-400.webp 400w, /img/cat-800.webp 800w" sizes="100vw">',
    '<source type="image/jpeg" srcset="/img/cat-400.jpeg 400w, /img/cat-800.jpeg 800w" sizes="100vw">',
    '<img src="/img/cat-800.avif" width="800" height="533" alt="A cat" loading="lazy" decoding="async">',
    "</picture>",
])


def test_static_light_only_markup(encoder, config):
    out = compose_static(ImageRequest(src="./cat.jpg", alt="A cat"), PAGE, encoder, config)
    assert out == EXPECTED_LIGHT_ONLY


def test_static_encodes_with_configured_formats_and_widths(encoder, config):
    compose_static(ImageRequest(src="./cat.jpg", alt="A cat", widths=[320, 640, 960]), PAGE, encoder, config)
    (call,) = encoder.calls
    assert call["src"] == "/site/posts/cat.jpg"
    assert call["formats"] == ["avif", "webp", "jpeg"]
    assert call["widths"] == [320, 640, 960]
    assert call["output_dir"] == config.output_dir
    assert call["animated"] is False


def test_static_with_dark_variant(encoder, config):
    request = ImageRequest(src="cat.jpg", alt="A cat", dark_src="cat-dark.jpg", sizes="50vw")
    out = compose_static(request, PAGE, encoder, config)
    lines = out.split("\n")

    assert lines[0] == "<picture>" and lines[-1] == "</picture>"
    sources = [line for line in lines if line.startswith("<source")]
    assert len(sources) == 6
    assert all('media="(prefers-color-scheme: dark)"' in s and "cat-dark-" in s for s in sources[:3])
    assert all("media=" not in s and "cat-dark-" not in s for s in sources[3:])
    assert out.count("<img ") == 1
    # fallback is always the light image
    assert '<img src="/img/cat-800.avif"' in out
    assert sorted(c["src"] for c in encoder.calls) == ["/site/posts/cat-dark.jpg", "/site/posts/cat.jpg"]


def test_static_element_counts_follow_formats(encoder, tmp_path):
    config = PictureConfig(output_dir=str(tmp_path), formats=("webp", "jpeg"))
    out = compose_static(ImageRequest(src="cat.jpg", alt="x", dark_src="d.jpg"), PAGE, encoder, config)
    assert out.count("<source ") == 2 * 2
    assert '<img src="/img/cat-800.webp"' in out


def test_static_is_idempotent(config):
    request = ImageRequest(src="cat.jpg", alt="A cat", dark_src="cat-dark.jpg")
    first = compose_static(request, PAGE, FakeEncoder(), config)
    second = compose_static(request, PAGE, FakeEncoder(), config)
    assert first == second


def test_static_remote_source_passes_through(encoder, config):
    compose_static(ImageRequest(src="https://example.com/cat.jpg", alt="x"), PAGE, encoder, config)
    assert encoder.calls[0]["src"] == "https://example.com/cat.jpg"


def test_static_escapes_alt(encoder, config):
    out = compose_static(ImageRequest(src="cat.jpg", alt='A "cat"'), PAGE, encoder, config)
    assert 'alt="A &quot;cat&quot;"' in out


def test_light_and_dark_encodes_run_concurrently(config):
    barrier = threading.Barrier(2, timeout=5)

    class RendezvousEncoder(FakeEncoder):
        def encode(self, *args, **kwargs):
            barrier.wait()
            return super().encode(*args, **kwargs)

    out = compose_static(ImageRequest(src="cat.jpg", alt="x", dark_src="dark.jpg"), PAGE, RendezvousEncoder(), config)
    assert out.count("<source ") == 6


@pytest.mark.parametrize("widths", [[0], [-400], [400, 0], [True], ["400"], [400.5], "400", 400, {"w": 400}])
def test_bad_widths_fail_before_encoding(encoder, config, widths):
    with pytest.raises(ConfigurationError):
        compose_static(ImageRequest(src="cat.jpg", alt="x", widths=widths), PAGE, encoder, config)
    assert encoder.calls == []


@pytest.mark.parametrize("widths", [None, []])
def test_missing_widths_mean_original_size(widths):
    assert validate_widths(widths) == ["auto"]


def test_auto_width_is_accepted():
    assert validate_widths([400, "auto"]) == [400, "auto"]


def test_missing_light_source_raises_resolution_error(config):
    encoder = FakeEncoder(missing=["/site/posts/gone.jpg"])
    with pytest.raises(ResolutionError) as excinfo:
        compose_static(ImageRequest(src="gone.jpg", alt="x"), PAGE, encoder, config)
    assert excinfo.value.path == "/site/posts/gone.jpg"
    assert "/site/posts/gone.jpg" in str(excinfo.value)


def test_missing_dark_source_fails_whole_picture(config):
    encoder = FakeEncoder(missing=["/site/posts/gone-dark.jpg"])
    with pytest.raises(ResolutionError, match="gone-dark.jpg"):
        compose_static(ImageRequest(src="cat.jpg", alt="x", dark_src="gone-dark.jpg"), PAGE, encoder, config)


def test_encoder_os_error_becomes_encoding_error(config):
    encoder = FakeEncoder(error=OSError("disk full"))
    with pytest.raises(EncodingError, match="disk full"):
        compose_static(ImageRequest(src="cat.jpg", alt="x"), PAGE, encoder, config)


def test_animated_uses_probed_dimensions(encoder, config):
    probe = FakeProbe(width=600, height=400)
    request = AnimatedImageRequest(src="loop.gif", alt="Loop", widths=[400])
    out = compose_animated(request, PAGE, encoder, probe, config)

    assert out == "\n".join([
        "<picture>",
        '<source type="image/webp" srcset="/img/loop-400.webp 400w" sizes="100vw">',
        '<img src="/img/loop-400.webp" width="600" height="400" alt="Loop" loading="lazy" decoding="async">',
        "</picture>",
    ])
    assert 'height="267"' not in out
    assert probe.calls == ["/site/posts/loop.gif"]
    (call,) = encoder.calls
    assert call["formats"] == ["webp"]
    assert call["animated"] is True


def test_animated_class_name(encoder, probe, config):
    request = AnimatedImageRequest(src="loop.gif", alt="Loop", class_name="hero wide")
    out = compose_animated(request, PAGE, encoder, probe, config)
    assert out.startswith('<picture class="hero wide">\n')
    assert "media=" not in out


def test_animated_format_is_configurable(encoder, probe, tmp_path):
    config = PictureConfig(output_dir=str(tmp_path), animated_format="gif")
    out = compose_animated(AnimatedImageRequest(src="loop.gif", alt="Loop"), PAGE, encoder, probe, config)
    assert 'type="image/gif"' in out
    assert encoder.calls[0]["formats"] == ["gif"]


def test_animated_missing_source_is_resolution_error(encoder, config):
    probe = FakeProbe(missing=["/site/posts/gone.gif"])
    with pytest.raises(ResolutionError, match="gone.gif"):
        compose_animated(AnimatedImageRequest(src="gone.gif", alt="x"), PAGE, encoder, probe, config)
    assert encoder.calls == []
