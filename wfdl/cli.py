#!/usr/bin/env python3
"""
wfdl: download web fonts and their CSS into a local directory.

Usage:
  wfdl --font "https://fonts.googleapis.com/css2?family=Inter:wght@400;600&display=swap" -o static/fonts

Options come from the command line, then wfdl.config.{js,mjs,cjs,json}
in the working directory (or --config), then built-in defaults.
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from wfdl.load_config import ConfigError, WfdlConfig, load_config
from wfdl.run_wfdl import ResolvedOptions, run_wfdl

HELP = """Usage: wfdl [options]

Options:
  -f, --font <url>         Add a font URL (can repeat)
  -o, --out <dir>          Output directory (default: ./fonts or from config)
  -c, --config <file>      Config file (wfdl.config.{js,mjs,cjs,json})
  -s, --subset <name>      Allowed subset (can repeat), e.g. latin,latin-ext
      --minify-css         Force minify CSS
      --no-minify-css      Force no CSS minification
      --dry-run            Resolve options and exit without downloading
  -v, --verbose            Verbose output
  -h, --help               Show this help

Priority: CLI > config file > defaults
"""

# flag -> (field, repeatable)
VALUE_FLAGS = {
    "--font": ("fonts", True),
    "-f": ("fonts", True),
    "--out": ("out_dir", False),
    "-o": ("out_dir", False),
    "--config": ("config_file", False),
    "-c": ("config_file", False),
    "--subset": ("subsets", True),
    "-s": ("subsets", True),
}
# used in "Missing value" messages
LONG_NAMES = {"fonts": "--font", "out_dir": "--out", "config_file": "--config", "subsets": "--subset"}


class CliOptions(BaseModel):
    fonts: List[str] = Field(default_factory=list)
    out_dir: Optional[str] = None
    verbose: Optional[bool] = None
    config_file: Optional[str] = None
    subsets: List[str] = Field(default_factory=list)
    minify_css: Optional[bool] = None
    dry_run: bool = False


def print_help() -> None:
    print(HELP)


def parse_cli_args(argv: List[str]) -> CliOptions:
    """Parse raw argv into CliOptions.

    Unknown arguments are warned about and skipped. A value flag without a
    value exits with status 1; --help prints usage and exits with 0.
    """
    cli = CliOptions()
    i = 0
    while i < len(argv):
        arg = argv[i]

        if arg in VALUE_FLAGS:
            field, repeatable = VALUE_FLAGS[arg]
            val = argv[i + 1] if i + 1 < len(argv) else None
            if not val:
                print(f"[wfdl] Missing value for {LONG_NAMES[field]}", file=sys.stderr)
                sys.exit(1)
            if repeatable:
                getattr(cli, field).append(val)
            else:
                setattr(cli, field, val)
            i += 2
            continue

        if arg == "--minify-css":
            cli.minify_css = True
        elif arg == "--no-minify-css":
            cli.minify_css = False
        elif arg in ("--verbose", "-v"):
            cli.verbose = True
        elif arg == "--dry-run":
            cli.dry_run = True
        elif arg in ("--help", "-h"):
            print_help()
            sys.exit(0)
        else:
            print(f"[wfdl] Unknown argument: {arg}", file=sys.stderr)
        i += 1

    return cli


def _first_set(*values):
    for v in values:
        if v is not None:
            return v
    return None


def merge_config_and_cli(cfg: WfdlConfig, cli: CliOptions) -> ResolvedOptions:
    """Priority: CLI > config > defaults.

    Lists from the CLI only win when non-empty.
    """
    return ResolvedOptions(
        font_urls=cli.fonts if cli.fonts else (cfg.fonts or []),
        out_dir=_first_set(cli.out_dir, cfg.out_dir, "./fonts"),
        verbose=_first_set(cli.verbose, cfg.verbose, False),
        subsets_allowed=cli.subsets if cli.subsets else (cfg.subsets_allowed or []),
        minify_css=(
            cli.minify_css
            if isinstance(cli.minify_css, bool)
            else cfg.minify_css if isinstance(cfg.minify_css, bool) else None
        ),
    )


def main(argv: Optional[List[str]] = None) -> int:
    cli = parse_cli_args(sys.argv[1:] if argv is None else argv)

    try:
        cfg = load_config(cli.config_file)
    except (ConfigError, OSError) as e:
        print(f"[wfdl] Error: {e}", file=sys.stderr)
        return 1

    final_opts = merge_config_and_cli(cfg, cli)

    if not final_opts.font_urls:
        print(
            "[wfdl] No fonts specified. Add --font <url> or define fonts[] in wfdl.config.json",
            file=sys.stderr,
        )
        return 1

    try:
        asyncio.run(run_wfdl(final_opts, dry_run=cli.dry_run))
    except Exception as e:
        print(f"[wfdl] Error: {e}", file=sys.stderr)
        return 1
    return 0


def run() -> None:
    # .env in the working directory (proxy settings etc. for httpx)
    load_dotenv(Path.cwd() / ".env")
    sys.exit(main())


if __name__ == "__main__":
    run()
