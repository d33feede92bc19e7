from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from wfdl.engine import bundler
from wfdl.engine.bundler import OutputBundle, OutputOptions, Plugin
from wfdl.engine.webfont import WebfontDownload, WebfontOptions

ASSETS_SUBFOLDER = "types"
DROPPED_SUFFIXES = (".js", ".html")


class ResolvedOptions(BaseModel):
    font_urls: List[str] = Field(default_factory=list)
    out_dir: str = "./fonts"
    verbose: bool = False
    subsets_allowed: List[str] = Field(default_factory=list)
    # None = not set, keep the plugin default
    minify_css: Optional[bool] = None


class SuppressJsAndHtmlOutput(Plugin):
    """Removes JS bundles and HTML from the final build.

    Only the assets created by the font plugin (CSS + font files) are kept.
    """

    name = "wfdl-suppress-output"

    def generate_bundle(self, options: OutputOptions, bundle: OutputBundle) -> None:
        for file_name in list(bundle):
            if file_name.endswith(DROPPED_SUFFIXES):
                del bundle[file_name]


def webfont_plugin_options(options: ResolvedOptions) -> Dict[str, Any]:
    opts: Dict[str, Any] = {
        "assets_subfolder": ASSETS_SUBFOLDER,
        "inject_as_style_tag": False,
        "subsets_allowed": list(options.subsets_allowed),
    }
    # only pass minify_css if the user set it, so the plugin keeps its default
    if isinstance(options.minify_css, bool):
        opts["minify_css"] = options.minify_css
    return opts


async def run_wfdl(
    options: ResolvedOptions,
    dry_run: bool = False,
    cwd: Optional[Path] = None,
) -> Optional[OutputBundle]:
    """Runs a minimal build that downloads and emits font assets, stripping
    the JS/HTML the bundler normally produces.

    With *dry_run* the resolved paths are logged (when verbose) and the
    build is skipped.
    """
    if not options.font_urls:
        raise ValueError("No font URLs provided.")

    root = Path(cwd) if cwd is not None else Path.cwd()
    out_abs = (root / options.out_dir).resolve()

    if options.verbose:
        print(f"[wfdl] cwd: {root}")
        print(f"[wfdl] output dir: {out_abs}")
        print(f"[wfdl] fonts: {', '.join(options.font_urls)}")

    if dry_run:
        if options.verbose:
            print("[wfdl] dry run: skipping build.")
        return None

    config = bundler.InlineConfig(
        root=root,
        out_dir=out_abs,
        # do not empty the whole dir in case the user keeps other stuff there
        empty_out_dir=False,
        # keep filenames predictable
        asset_file_names="[name].[ext]",
        plugins=[
            WebfontDownload(
                options.font_urls,
                WebfontOptions(**webfont_plugin_options(options)),
            ),
            SuppressJsAndHtmlOutput(),
        ],
        log_level="info" if options.verbose else "warn",
    )
    bundle = await bundler.build(config)

    if options.verbose:
        print("[wfdl] done.")
    return bundle
