"""Command line entry points: convert SVG files in place, or run the HTTP service."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Iterable, List, Sequence

import uvicorn

from .config import Settings, get_settings
from .errors import InputError
from .logging import configure_logging
from .rendering import RasterRenderer, output_name_for

USAGE = "usage: svg-convert <file.svg> [more files...]"


def _select_svg_files(candidates: Iterable[str]) -> List[Path]:
    selected: List[Path] = []
    for candidate in candidates:
        path = Path(candidate)
        if path.suffix.lower() == ".svg" and path.is_file():
            selected.append(path)
    return selected


def _load_settings(config_file: str | None) -> Settings:
    if config_file:
        return Settings.from_source(config_file=config_file)
    return get_settings()


async def _convert_one(renderer: RasterRenderer, svg_path: Path, scale: int | None) -> Path:
    markup = await asyncio.to_thread(svg_path.read_text, encoding="utf-8", errors="replace")
    image = await renderer.render(markup, scale)
    png_path = svg_path.with_name(output_name_for(svg_path.name, 0))
    await asyncio.to_thread(png_path.write_bytes, image.png)
    return png_path


async def convert_files(renderer: RasterRenderer, svg_files: Sequence[Path], scale: int | None = None) -> int:
    """Convert each file beside itself; return the number of failures."""

    failures = 0
    for svg_path in svg_files:
        try:
            png_path = await _convert_one(renderer, svg_path, scale)
        except Exception as exc:
            failures += 1
            print(f"❌ {svg_path.name}: {exc}", file=sys.stderr)
            continue
        print(f"✅ {svg_path.name} → {png_path.name}")
    return failures


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="svg-convert",
        description="Convert SVG files to PNG next to the originals.",
    )
    parser.add_argument("paths", nargs="*", help="SVG files to convert")
    parser.add_argument(
        "--scale",
        type=int,
        default=None,
        help="Pixel density multiplier (default: from settings, 2)",
    )
    parser.add_argument("--config", dest="config", default=None, help="Optional settings YAML file")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="WARNING",
        help="Log level for pipeline diagnostics (default: %(default)s)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.paths:
        print(USAGE, file=sys.stderr)
        return 1

    svg_files = _select_svg_files(args.paths)
    if not svg_files:
        print("No valid SVG files found", file=sys.stderr)
        return 1

    settings = _load_settings(args.config)
    configure_logging(settings.logging.model_copy(update={"level": args.log_level}), to_file=False)
    renderer = RasterRenderer.from_settings(settings.render)

    try:
        scale = renderer.resolve_scale(args.scale)
    except InputError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(f"Converting {len(svg_files)} file(s)...")
    asyncio.run(convert_files(renderer, svg_files, scale))
    print("Done.")
    return 0


def build_server_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="svg-convert-server", description="Run the SVG to PNG HTTP service.")
    parser.add_argument("--host", default=settings.server.host, help="Bind address (default: %(default)s)")
    parser.add_argument("--port", type=int, default=settings.server.port, help="Bind port (default: %(default)s)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    return parser


def serve_main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args = build_server_parser(settings).parse_args(argv)
    uvicorn.run(
        "svg_converter.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
