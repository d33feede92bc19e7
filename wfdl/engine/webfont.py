"""
Font-download plugin: fetches web-font stylesheets, downloads the fonts
they reference and emits a self-hosted stylesheet plus the font files.
"""
from __future__ import annotations

import asyncio
import hashlib
import posixpath
from typing import Dict, List, Optional, Set, Tuple
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel

from wfdl.engine.bundler import BuildContext, Plugin
from wfdl.engine.css import FontFace, filter_subsets, minify_css, parse_font_faces

# Font services pick the format from the UA; a current desktop browser gets woff2
UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
CSS_FILE_NAME = "webfonts.css"

FORMAT_EXTENSIONS = {
    "woff2": "woff2",
    "woff": "woff",
    "truetype": "ttf",
    "opentype": "otf",
    "embedded-opentype": "eot",
    "svg": "svg",
}
CONTENT_TYPE_EXTENSIONS = {
    "font/woff2": "woff2",
    "font/woff": "woff",
    "application/font-woff": "woff",
    "font/ttf": "ttf",
    "font/sfnt": "ttf",
    "application/x-font-ttf": "ttf",
    "font/otf": "otf",
    "application/x-font-opentype": "otf",
    "application/vnd.ms-fontobject": "eot",
    "image/svg+xml": "svg",
}


class WebfontOptions(BaseModel):
    assets_subfolder: str = ""
    inject_as_style_tag: bool = True
    subsets_allowed: List[str] = []
    minify_css: bool = True
    user_agent: str = UA
    timeout: float = 30.0
    max_concurrency: int = 16


def font_basename(url: str) -> str:
    path = urlsplit(url).path
    return posixpath.basename(path.rstrip("/")) or "font"


def font_extension(url: str, fmt: Optional[str] = None, content_type: str = "") -> str:
    """Extension for a font file: from the URL path, else the format() hint,
    else the response content type. Empty when nothing is known."""
    ext = posixpath.splitext(font_basename(url))[1].lstrip(".")
    if ext:
        return ext
    if fmt and fmt.lower() in FORMAT_EXTENSIONS:
        return FORMAT_EXTENSIONS[fmt.lower()]
    mime = content_type.split(";")[0].strip().lower()
    return CONTENT_TYPE_EXTENSIONS.get(mime, "")


def font_file_name(url: str, ext: str, taken: Set[str]) -> str:
    """Local file name for *url*, unique among *taken*.

    URLs with a query string (css2 ?text= kits, Typekit) or a basename that
    is already in use get a short hash of the full URL appended.
    """
    stem = posixpath.splitext(font_basename(url))[0] or "font"
    name = f"{stem}.{ext}" if ext else stem
    if urlsplit(url).query or name in taken:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]
        name = f"{stem}-{digest}.{ext}" if ext else f"{stem}-{digest}"
    return name


class WebfontDownload(Plugin):
    name = "webfont-download"

    def __init__(
        self,
        font_urls: List[str],
        options: Optional[WebfontOptions] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.font_urls = list(font_urls)
        self.options = options or WebfontOptions()
        self._transport = transport
        self.css: str = ""
        self.css_file: Optional[str] = None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": self.options.user_agent},
            # requests wait on the semaphore, not in the connection pool
            timeout=httpx.Timeout(self.options.timeout, pool=None),
            follow_redirects=True,
            transport=self._transport,
        )

    async def _fetch_text(self, client: httpx.AsyncClient, sem: asyncio.Semaphore, url: str) -> str:
        async with sem:
            r = await client.get(url, headers={"Accept": "text/css,*/*;q=0.1"})
        r.raise_for_status()
        return r.text

    async def _fetch_bytes(
        self, client: httpx.AsyncClient, sem: asyncio.Semaphore, url: str
    ) -> Tuple[bytes, str]:
        async with sem:
            r = await client.get(url)
        r.raise_for_status()
        return r.content, r.headers.get("content-type", "")

    def _subfolder_name(self, base: str) -> str:
        sub = self.options.assets_subfolder.strip("/")
        return f"{sub}/{base}" if sub else base

    async def build_start(self, ctx: BuildContext) -> None:
        sem = asyncio.Semaphore(max(1, self.options.max_concurrency))
        async with self._client() as client:
            sheets = await asyncio.gather(*(self._fetch_text(client, sem, u) for u in self.font_urls))

            faces: List[FontFace] = []
            for url, css in zip(self.font_urls, sheets):
                found = parse_font_faces(css, base_url=url)
                if not found:
                    ctx.warn(f"[{self.name}] no @font-face rules in {url}")
                faces.extend(found)
            faces = filter_subsets(faces, self.options.subsets_allowed)

            font_urls: List[str] = []
            formats: Dict[str, Optional[str]] = {}
            for face in faces:
                for u, fmt in face.sources():
                    if u not in font_urls:
                        font_urls.append(u)
                    formats[u] = formats.get(u) or fmt
            payloads = await asyncio.gather(*(self._fetch_bytes(client, sem, u) for u in font_urls))

        emitted: Dict[str, str] = {}
        taken: Set[str] = set()
        for url, (data, content_type) in zip(font_urls, payloads):
            ext = font_extension(url, formats.get(url), content_type)
            name = font_file_name(url, ext, taken)
            taken.add(name)
            emitted[url] = ctx.emit_file(data, name=self._subfolder_name(name))

        # url() values are relative to wherever the stylesheet ends up
        if self.options.inject_as_style_tag:
            css_dir = ""
        else:
            css_dir = posixpath.dirname(self._subfolder_name(CSS_FILE_NAME))

        def _relative(url: str) -> str:
            target = emitted[url]
            return posixpath.relpath(target, css_dir) if css_dir else target

        css = "\n\n".join(face.render(_relative) for face in faces) + "\n"
        if self.options.minify_css:
            css = minify_css(css)
        self.css = css

        if not self.options.inject_as_style_tag:
            self.css_file = ctx.emit_file(css, file_name=self._subfolder_name(CSS_FILE_NAME))
        ctx.info(f"[{self.name}] {len(faces)} font-face(s), {len(emitted)} font file(s)")

    def transform_index_html(self, html: str, ctx: BuildContext) -> str:
        if self.options.inject_as_style_tag:
            tag = f"<style>{self.css}</style>"
        elif self.css_file:
            tag = f'<link rel="stylesheet" href="/{self.css_file}">'
        else:
            return html
        return html.replace("</head>", f"    {tag}\n  </head>", 1)
