import asyncio
import io
import tempfile
import unittest
from contextlib import redirect_stderr
from pathlib import Path
from typing import List

import httpx

from tests.fixtures import CSS_URL, GOOGLE_CSS, KIT_CSS
from wfdl.engine import bundler
from wfdl.engine.webfont import WebfontDownload, WebfontOptions, font_basename, font_extension, font_file_name


class FakeFontService:
    def __init__(self, css: str = GOOGLE_CSS):
        self.css = css
        self.requested: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        if request.url.host == "fonts.googleapis.com":
            return httpx.Response(200, text=self.css, headers={"content-type": "text/css"})
        if request.url.host == "fonts.gstatic.com":
            return httpx.Response(200, content=b"wOF2" + url.encode())
        return httpx.Response(404)


class TestWebfontDownload(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _build(self, service: FakeFontService, **opts) -> bundler.OutputBundle:
        plugin = WebfontDownload([CSS_URL], WebfontOptions(**opts), transport=httpx.MockTransport(service))
        config = bundler.InlineConfig(
            root=self.root,
            out_dir=self.root / "out",
            asset_file_names="[name].[ext]",
            plugins=[plugin],
            log_level="silent",
        )
        return asyncio.run(bundler.build(config))

    def test_font_basename(self) -> None:
        self.assertEqual(font_basename("https://x.test/a/b/font.woff2?v=1"), "font.woff2")

    def test_emits_css_and_fonts_into_subfolder(self) -> None:
        service = FakeFontService()
        bundle = self._build(service, assets_subfolder="types", inject_as_style_tag=False, minify_css=False)
        self.assertIn("types/webfonts.css", bundle)
        self.assertIn("types/inter-latin.woff2", bundle)
        self.assertIn("types/inter-ext.woff2", bundle)

        css = (self.root / "out" / "types" / "webfonts.css").read_text(encoding="utf-8")
        self.assertIn("url(inter-latin.woff2)", css)
        self.assertIn("/* latin */", css)
        self.assertNotIn("gstatic", css)
        font = (self.root / "out" / "types" / "inter-latin.woff2").read_bytes()
        self.assertTrue(font.startswith(b"wOF2"))

        html = bundle["index.html"].source
        self.assertIn('<link rel="stylesheet" href="/types/webfonts.css">', html)

    def test_subsets_allowed_skips_other_downloads(self) -> None:
        service = FakeFontService()
        bundle = self._build(service, assets_subfolder="types", inject_as_style_tag=False, subsets_allowed=["latin"])
        self.assertIn("types/inter-latin.woff2", bundle)
        self.assertNotIn("types/inter-ext.woff2", bundle)
        self.assertFalse(any(u.endswith("inter-ext.woff2") for u in service.requested))

    def test_minify_is_default(self) -> None:
        self._build(FakeFontService(), assets_subfolder="types", inject_as_style_tag=False)
        css = (self.root / "out" / "types" / "webfonts.css").read_text(encoding="utf-8")
        self.assertNotIn("\n", css)
        self.assertNotIn("/*", css)
        self.assertTrue(css.startswith("@font-face{"))

    def test_inject_as_style_tag(self) -> None:
        bundle = self._build(FakeFontService(), assets_subfolder="types")
        self.assertNotIn("types/webfonts.css", bundle)
        html = bundle["index.html"].source
        self.assertIn("<style>", html)
        self.assertIn("url(types/inter-latin.woff2)", html)

    def test_http_error_propagates(self) -> None:
        plugin = WebfontDownload(
            ["https://fonts.googleapis.com/missing"],
            transport=httpx.MockTransport(lambda request: httpx.Response(404)),
        )
        config = bundler.InlineConfig(root=self.root, out_dir=self.root / "out", plugins=[plugin], log_level="silent")
        with self.assertRaises(httpx.HTTPStatusError):
            asyncio.run(bundler.build(config))
        self.assertFalse((self.root / "out").exists())

    def test_kit_urls_get_distinct_files(self) -> None:
        bundle = self._build(FakeFontService(KIT_CSS), assets_subfolder="types", inject_as_style_tag=False, minify_css=False)
        fonts = sorted(n for n in bundle if n.startswith("types/font"))
        self.assertEqual(len(fonts), 2, fonts)
        for name in fonts:
            self.assertTrue(name.endswith(".woff2"), name)

        css = bundle["types/webfonts.css"].source
        for name in fonts:
            ref = name.split("/")[-1]
            self.assertIn(f"url({ref})", css)
        data = {bundle[n].source for n in fonts}
        self.assertEqual(len(data), 2)

    def test_file_name_helpers(self) -> None:
        kit = "https://fonts.gstatic.com/l/font?kit=AAA"
        self.assertEqual(font_extension(kit, "woff2"), "woff2")
        self.assertEqual(font_extension(kit, None, "font/woff; charset=binary"), "woff")
        self.assertEqual(font_extension(kit), "")
        self.assertEqual(font_extension("https://x.test/a.ttf", "woff2"), "ttf")

        taken = {"a.woff2"}
        renamed = font_file_name("https://y.test/a.woff2", "woff2", taken)
        self.assertRegex(renamed, r"^a-[0-9a-f]{8}\.woff2$")
        self.assertEqual(font_file_name("https://y.test/b.woff2", "woff2", taken), "b.woff2")
        self.assertRegex(font_file_name(kit, "", set()), r"^font-[0-9a-f]{8}$")

    def test_extension_from_content_type(self) -> None:
        css = "@font-face { font-family: 'X'; src: url(https://fonts.gstatic.com/l/font?kit=CCC); }"

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "fonts.googleapis.com":
                return httpx.Response(200, text=css)
            return httpx.Response(200, content=b"wOFF", headers={"content-type": "font/woff"})

        plugin = WebfontDownload([CSS_URL], WebfontOptions(assets_subfolder="types"), transport=httpx.MockTransport(handler))
        config = bundler.InlineConfig(
            root=self.root, out_dir=self.root / "out", asset_file_names="[name].[ext]", plugins=[plugin], log_level="silent"
        )
        bundle = asyncio.run(bundler.build(config))
        fonts = [n for n in bundle if n.startswith("types/font")]
        self.assertEqual(len(fonts), 1)
        self.assertTrue(fonts[0].endswith(".woff"))

    def test_warns_when_stylesheet_has_no_font_faces(self) -> None:
        plugin = WebfontDownload(
            ["https://fonts.gstatic.com/s/inter/v13/inter-latin.woff2"],
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"wOF2")),
        )
        config = bundler.InlineConfig(root=self.root, out_dir=self.root / "out", plugins=[plugin], log_level="warn")
        err = io.StringIO()
        with redirect_stderr(err):
            asyncio.run(bundler.build(config))
        self.assertIn("no @font-face rules in https://fonts.gstatic.com/s/inter/v13/inter-latin.woff2", err.getvalue())

    def test_downloads_are_bounded(self) -> None:
        css = "\n".join(
            f"@font-face {{ src: url(https://fonts.gstatic.com/s/f{i}.woff2) format('woff2'); }}" for i in range(8)
        )
        state = {"active": 0, "peak": 0}

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "fonts.googleapis.com":
                return httpx.Response(200, text=css)
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            await asyncio.sleep(0.01)
            state["active"] -= 1
            return httpx.Response(200, content=b"wOF2")

        plugin = WebfontDownload(
            [CSS_URL], WebfontOptions(max_concurrency=2), transport=httpx.MockTransport(handler)
        )
        config = bundler.InlineConfig(root=self.root, out_dir=self.root / "out", plugins=[plugin], log_level="silent")
        asyncio.run(bundler.build(config))
        self.assertEqual(state["peak"], 2)

    def test_client_has_no_pool_timeout(self) -> None:
        client = WebfontDownload([CSS_URL])._client()
        try:
            self.assertIsNone(client.timeout.pool)
            self.assertEqual(client.timeout.read, 30.0)
        finally:
            asyncio.run(client.aclose())


if __name__ == "__main__":
    unittest.main()
