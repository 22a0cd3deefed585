#!/usr/bin/env python3
"""
Command line front end for responsive_picture.

  responsive-picture image img/cat.jpg "A cat" --dark img/cat-dark.jpg --widths 400,800
  responsive-picture animated img/loop.gif "Spinner" --class spinner
  responsive-picture render content/*.html --out-dir _site

`image` and `animated` print the <picture> markup. `render` expands
{% image %} / {% animatedImage %} shortcodes in each file and writes the
result to --out-dir (or reports what it would do with --dry-run).
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .composer import compose_animated, compose_static
from .config import AUTO_WIDTH, DEFAULT_SIZES, DEFAULT_WIDTHS, PictureConfig, load_config
from .encoders import PillowEncoder, PillowProbe
from .errors import PictureError
from .models import AnimatedImageRequest, ImageRequest, Width
from .shortcodes import Shortcodes, find_shortcodes


def parse_variant_widths(s: str) -> List[Width]:
    parts = [x.strip() for x in s.split(",") if x.strip()]
    if parts == [AUTO_WIDTH]:
        return [AUTO_WIDTH]
    try:
        widths = sorted({int(x) for x in parts})
    except ValueError:
        raise argparse.ArgumentTypeError("Invalid --widths. Example: 400,800 (or auto)")
    if not widths or any(w <= 0 for w in widths):
        raise argparse.ArgumentTypeError("Widths must be positive integers. Example: 400,800")
    return widths


def write_text_atomic(target: Path, text: str) -> None:
    tmp = target.with_suffix(target.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    os.replace(tmp, target)


def _add_shared_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, default=None, help="JSON file with picture settings")
    parser.add_argument("--output-dir", default=None, help="Where encoded images are written (default: _site/img)")
    parser.add_argument("--url-path", default=None, help='Public URL prefix for encoded images (default: "/img/")')
    parser.add_argument("--threads", type=int, default=None, help="Worker threads for shortcode expansion")
    parser.add_argument("--quality", type=int, default=None, help="Quality for lossy output (1-100)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="responsive-picture",
        description="Build responsive <picture> markup with AVIF/WebP/JPEG sources.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_image = sub.add_parser("image", help="Print <picture> markup for a still image")
    p_image.add_argument("src", help="Image path (relative to --page) or absolute URL")
    p_image.add_argument("alt", help="Alt text")
    p_image.add_argument("--dark", default=None, help="Dark-mode variant of the image")
    p_image.add_argument("--sizes", default=DEFAULT_SIZES, help='The sizes attribute (default: "100vw")')
    p_image.add_argument("--widths", type=parse_variant_widths, default=list(DEFAULT_WIDTHS),
                         help="Comma-separated widths to generate (e.g. 400,800) or auto")
    p_image.add_argument("--page", default=os.path.join(os.curdir, "index.html"),
                         help="Document the image is referenced from; relative sources resolve next to it")
    _add_shared_options(p_image)

    p_anim = sub.add_parser("animated", help="Print <picture> markup for an animated image")
    p_anim.add_argument("src", help="Image path (relative to --page) or absolute URL")
    p_anim.add_argument("alt", help="Alt text")
    p_anim.add_argument("--sizes", default=DEFAULT_SIZES, help='The sizes attribute (default: "100vw")')
    p_anim.add_argument("--widths", type=parse_variant_widths, default=list(DEFAULT_WIDTHS),
                        help="Comma-separated widths to generate (e.g. 400,800) or auto")
    p_anim.add_argument("--class", dest="class_name", default=None, help="Class attribute for <picture>")
    p_anim.add_argument("--page", default=os.path.join(os.curdir, "index.html"),
                        help="Document the image is referenced from; relative sources resolve next to it")
    _add_shared_options(p_anim)

    p_render = sub.add_parser("render", help="Expand image shortcodes in documents")
    p_render.add_argument("files", nargs="+", type=Path, help="HTML/Markdown documents to expand")
    p_render.add_argument("--out-dir", type=Path, default=Path("_site"), help="Where expanded documents are written")
    p_render.add_argument("--dry-run", action="store_true", help="Show planned actions only")
    _add_shared_options(p_render)

    return parser


def _config_from_args(args: argparse.Namespace) -> PictureConfig:
    config = load_config(args.config)
    return config.with_overrides(
        output_dir=args.output_dir,
        url_path=args.url_path,
        threads=args.threads,
        quality=args.quality,
    )


def render_file(path: Path, out_dir: Path, shortcodes: Shortcodes, dry_run: bool) -> str:
    """Expand one document; returns a status line."""
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        text = path.read_text(encoding="latin-1")

    found = find_shortcodes(text)
    if not found:
        return f"SKIP  {path}  no image shortcodes"
    if dry_run:
        return f"DRY   {path}  shortcodes: {len(found)}"

    expanded = shortcodes.expand(text, str(path.resolve()))
    target = out_dir / path.name
    target.parent.mkdir(parents=True, exist_ok=True)
    write_text_atomic(target, expanded)
    return f"EDIT  {target}  shortcodes: {len(found)}"


def _run(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    encoder = PillowEncoder(quality=config.quality)

    if args.command == "image":
        request = ImageRequest(src=args.src, alt=args.alt, dark_src=args.dark, sizes=args.sizes, widths=args.widths)
        print(compose_static(request, args.page, encoder, config))
        return 0

    if args.command == "animated":
        request = AnimatedImageRequest(
            src=args.src, alt=args.alt, sizes=args.sizes, widths=args.widths, class_name=args.class_name,
        )
        print(compose_animated(request, args.page, encoder, PillowProbe(), config))
        return 0

    shortcodes = Shortcodes(encoder=encoder, config=config)
    print(f"Expanding {len(args.files)} document(s) -> {args.out_dir}")
    print(f"Images: {config.output_dir} ({config.url_path}), formats={','.join(config.formats)}, threads={config.threads}")
    failures = 0
    for path in args.files:
        try:
            print(render_file(path, args.out_dir, shortcodes, args.dry_run))
        except (PictureError, OSError) as e:
            failures += 1
            print(f"ERR   {path}: {e}", file=sys.stderr)
    return 1 if failures else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return _run(args)
    except PictureError as e:
        print(f"ERR   {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
