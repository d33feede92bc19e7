"""
Minimal asset bundler used by wfdl.

Mirrors the shape of a web bundler build: plugins emit assets, the HTML
shell and the entry chunk are always produced, every plugin gets one
``generate_bundle`` pass over the complete output, then whatever is left
is written to ``out_dir``.
"""
from __future__ import annotations

import hashlib
import posixpath
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

LogLevel = Literal["info", "warn", "silent"]

DEFAULT_ASSET_FILE_NAMES = "assets/[name]-[hash].[ext]"

HTML_SHELL = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <title>wfdl</title>
  </head>
  <body>
    <script type="module" src="/{entry}"></script>
  </body>
</html>
"""
ENTRY_SOURCE = "// entry\n"


class OutputAsset(BaseModel):
    file_name: str
    name: Optional[str] = None
    source: Union[str, bytes]
    type: Literal["asset"] = "asset"


class OutputChunk(BaseModel):
    file_name: str
    code: str
    is_entry: bool = False
    type: Literal["chunk"] = "chunk"


OutputBundle = Dict[str, Union[OutputAsset, OutputChunk]]


class OutputOptions(BaseModel):
    dir: Path
    asset_file_names: str = DEFAULT_ASSET_FILE_NAMES


class InlineConfig(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path
    out_dir: Path
    empty_out_dir: bool = True
    asset_file_names: str = DEFAULT_ASSET_FILE_NAMES
    plugins: List[Any] = Field(default_factory=list)
    log_level: LogLevel = "info"


def content_hash(source: Union[str, bytes], length: int = 8) -> str:
    data = source.encode("utf-8") if isinstance(source, str) else source
    return hashlib.sha256(data).hexdigest()[:length]


def render_file_name(pattern: str, name: str, source: Union[str, bytes]) -> str:
    """Expand ``[name]``, ``[ext]``, ``[extname]`` and ``[hash]`` in *pattern*."""
    stem, ext = posixpath.splitext(name)
    if not ext:
        pattern = pattern.replace(".[ext]", "")
    return (
        pattern.replace("[name]", stem)
        .replace("[extname]", ext)
        .replace("[ext]", ext.lstrip("."))
        .replace("[hash]", content_hash(source))
    )


class Plugin:
    """Base class for build plugins. Every hook is optional."""

    name = "plugin"

    async def build_start(self, ctx: "BuildContext") -> None:
        return None

    def transform_index_html(self, html: str, ctx: "BuildContext") -> str:
        return html

    def generate_bundle(self, options: OutputOptions, bundle: OutputBundle) -> None:
        return None


class BuildContext:
    def __init__(self, config: InlineConfig):
        self.config = config
        self.assets: Dict[str, OutputAsset] = {}

    def emit_file(
        self,
        source: Union[str, bytes],
        *,
        name: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> str:
        """Register an asset and return its final output file name.

        An explicit *file_name* is used as-is; otherwise *name* goes through
        the ``asset_file_names`` pattern.
        """
        if file_name is None:
            if name is None:
                raise ValueError("emit_file needs either name or file_name")
            file_name = render_file_name(self.config.asset_file_names, name, source)
        self.assets[file_name] = OutputAsset(file_name=file_name, name=name, source=source)
        return file_name

    def info(self, msg: str) -> None:
        if self.config.log_level == "info":
            print(msg)

    def warn(self, msg: str) -> None:
        if self.config.log_level != "silent":
            print(msg, file=sys.stderr)


def _clear_dir(path: Path) -> None:
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def write_bundle(out_dir: Path, bundle: OutputBundle, empty_out_dir: bool) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    if empty_out_dir:
        _clear_dir(out_dir)
    written: List[Path] = []
    for file_name, item in bundle.items():
        dest = out_dir / file_name
        dest.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(item, OutputChunk):
            dest.write_text(item.code, encoding="utf-8")
        elif isinstance(item.source, bytes):
            dest.write_bytes(item.source)
        else:
            dest.write_text(item.source, encoding="utf-8")
        written.append(dest)
    return written


async def build(config: InlineConfig) -> OutputBundle:
    """Run every plugin, assemble the bundle and write it to ``config.out_dir``.

    Returns the bundle as it was written, after ``generate_bundle`` hooks ran.
    """
    root = config.root.resolve()
    out_dir = config.out_dir if config.out_dir.is_absolute() else root / config.out_dir
    ctx = BuildContext(config)
    plugins: List[Plugin] = list(config.plugins)

    for plugin in plugins:
        await plugin.build_start(ctx)

    entry_name = f"assets/index-{content_hash(ENTRY_SOURCE)}.js"
    html = HTML_SHELL.format(entry=entry_name)
    for plugin in plugins:
        html = plugin.transform_index_html(html, ctx)

    bundle: OutputBundle = dict(ctx.assets)
    bundle[entry_name] = OutputChunk(file_name=entry_name, code=ENTRY_SOURCE, is_entry=True)
    bundle["index.html"] = OutputAsset(file_name="index.html", name="index.html", source=html)

    options = OutputOptions(dir=out_dir, asset_file_names=config.asset_file_names)
    for plugin in plugins:
        plugin.generate_bundle(options, bundle)

    written = write_bundle(out_dir, bundle, config.empty_out_dir)
    for path in written:
        ctx.info(f"{path.relative_to(out_dir).as_posix():<40} {path.stat().st_size / 1024:.2f} kB")
    ctx.info(f"built {len(written)} file(s) into {out_dir}")
    return bundle
