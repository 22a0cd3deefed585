"""
Template-facing shortcodes.

Documents reference images with Nunjucks-style tags:

    {% image "./cat.jpg", "A cat", "./cat-dark.jpg", "(min-width: 800px) 50vw, 100vw", [400, 800] %}
    {% animatedImage "./loop.gif", "Spinner", "100vw", [320], "spinner" %}

Arguments are positional literals (strings, numbers, lists, null). Each tag
is replaced by the <picture> markup for it; everything else in the document
is left byte-for-byte alone.
"""

import ast
import concurrent.futures as cf
import inspect
import logging
import re
from typing import Any, List, Optional, Sequence, Tuple

from .composer import compose_animated, compose_static
from .config import DEFAULT_SIZES, DEFAULT_WIDTHS, PictureConfig
from .encoders import PillowEncoder, PillowProbe
from .errors import ConfigurationError
from .models import AnimatedImageRequest, Encoder, ImageRequest, Probe, Width

logger = logging.getLogger(__name__)

SHORTCODE_RE = re.compile(
    r"\{%-?\s*(?P<name>image|animatedImage)\s+(?P<args>.*?)\s*-?%\}",
    re.DOTALL,
)

NULL_NAMES = {"null": None, "undefined": None, "None": None, "none": None,
              "true": True, "True": True, "false": False, "False": False}
TEXT_ARGUMENTS = ("src", "alt", "dark_src", "sizes", "class_name")


def _literal(node: ast.AST, tag: str) -> Any:
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name) and node.id in NULL_NAMES:
        return NULL_NAMES[node.id]
    if isinstance(node, (ast.List, ast.Tuple)):
        return [_literal(elt, tag) for elt in node.elts]
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.USub) \
            and isinstance(node.operand, ast.Constant) and isinstance(node.operand.value, (int, float)):
        return -node.operand.value
    raise ConfigurationError(f"Unsupported shortcode argument in {tag!r}: {ast.dump(node)}")


def parse_arguments(args: str, tag: str = "") -> List[Any]:
    """Parse `"a.png", "Alt", null, [400, 800]` into Python values."""
    try:
        tree = ast.parse(f"({args},)", mode="eval")
    except SyntaxError as e:
        raise ConfigurationError(f"Malformed shortcode {tag or args!r}: {e.msg}") from e
    if not isinstance(tree.body, ast.Tuple):
        raise ConfigurationError(f"Malformed shortcode {tag or args!r}")
    return [_literal(node, tag or args) for node in tree.body.elts]


class Shortcodes:
    """The `image` / `animatedImage` shortcodes bound to one set of collaborators."""

    def __init__(
        self,
        encoder: Optional[Encoder] = None,
        probe: Optional[Probe] = None,
        config: Optional[PictureConfig] = None,
    ) -> None:
        self.config = config or PictureConfig()
        self.encoder = encoder or PillowEncoder(quality=self.config.quality)
        self.probe = probe or PillowProbe()

    def image(
        self,
        src: str,
        alt: str,
        dark_src: Optional[str] = None,
        sizes: Optional[str] = DEFAULT_SIZES,
        widths: Optional[Sequence[Width]] = DEFAULT_WIDTHS,
        *,
        page_input_path: str,
    ) -> str:
        request = ImageRequest(src=src, alt=alt, dark_src=dark_src, sizes=sizes or DEFAULT_SIZES, widths=widths)
        return compose_static(request, page_input_path, self.encoder, self.config)

    def animated_image(
        self,
        src: str,
        alt: str,
        sizes: Optional[str] = DEFAULT_SIZES,
        widths: Optional[Sequence[Width]] = DEFAULT_WIDTHS,
        class_name: Optional[str] = None,
        *,
        page_input_path: str,
    ) -> str:
        request = AnimatedImageRequest(
            src=src, alt=alt, sizes=sizes or DEFAULT_SIZES, widths=widths, class_name=class_name,
        )
        return compose_animated(request, page_input_path, self.encoder, self.probe, self.config)

    def _render(self, match: re.Match, page_input_path: str) -> str:
        tag = match.group(0)
        fn = self.image if match.group("name") == "image" else self.animated_image
        args = parse_arguments(match.group("args"), tag)
        try:
            bound = inspect.signature(fn).bind(*args, page_input_path=page_input_path)
        except TypeError as e:
            raise ConfigurationError(f"Bad arguments in {tag!r}: {e}") from e
        for name in TEXT_ARGUMENTS:
            value = bound.arguments.get(name)
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"Bad arguments in {tag!r}: {name} must be a string, got {value!r}")
        return fn(*bound.args, **bound.kwargs)

    def expand(self, text: str, page_input_path: str) -> str:
        """Replace every shortcode tag in `text`; tags are composed concurrently."""
        matches = list(SHORTCODE_RE.finditer(text))
        if not matches:
            return text

        with cf.ThreadPoolExecutor(max_workers=self.config.threads) as ex:
            futures = [ex.submit(self._render, m, page_input_path) for m in matches]
            rendered = [f.result() for f in futures]

        pieces: List[str] = []
        last = 0
        for m, markup in zip(matches, rendered):
            pieces.append(text[last:m.start()])
            pieces.append(markup)
            last = m.end()
        pieces.append(text[last:])
        logger.debug("Expanded %d shortcode(s) in %s", len(matches), page_input_path)
        return "".join(pieces)


def find_shortcodes(text: str) -> List[Tuple[str, str]]:
    """(name, raw tag) for every shortcode in `text`, in document order."""
    return [(m.group("name"), m.group(0)) for m in SHORTCODE_RE.finditer(text)]
