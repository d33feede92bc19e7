from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin

# Font services put a "/* latin */" style comment in front of each block
FONT_FACE_RE = re.compile(
    r"(?:/\*\s*(?P<subset>[\w-]+)\s*\*/\s*)?@font-face\s*\{(?P<body>[^}]*)\}",
    flags=re.S,
)
URL_RE = re.compile(r"url\(\s*(['\"]?)(?P<url>[^'\")]+)\1\s*\)")
SOURCE_RE = re.compile(
    URL_RE.pattern + r"(?:\s*format\(\s*['\"]?(?P<fmt>[\w-]+)['\"]?\s*\))?"
)
COMMENT_RE = re.compile(r"/\*.*?\*/", flags=re.S)


@dataclass
class FontFace:
    subset: Optional[str]
    body: str
    base_url: str

    def urls(self) -> List[str]:
        """Absolute font URLs referenced by this block, in order."""
        out: List[str] = []
        for m in URL_RE.finditer(self.body):
            u = m.group("url").strip()
            if u.startswith("data:"):
                continue
            out.append(urljoin(self.base_url, u))
        return out

    def sources(self) -> List[Tuple[str, Optional[str]]]:
        """(absolute url, format hint) pairs; the hint is None without format()."""
        out: List[Tuple[str, Optional[str]]] = []
        for m in SOURCE_RE.finditer(self.body):
            u = m.group("url").strip()
            if u.startswith("data:"):
                continue
            out.append((urljoin(self.base_url, u), m.group("fmt")))
        return out

    def render(self, replace: Callable[[str], str]) -> str:
        def _sub(m: re.Match) -> str:
            u = m.group("url").strip()
            if u.startswith("data:"):
                return m.group(0)
            return f"url({replace(urljoin(self.base_url, u))})"

        body = URL_RE.sub(_sub, self.body)
        head = f"/* {self.subset} */\n" if self.subset else ""
        return f"{head}@font-face {{{body}}}"


def parse_font_faces(css: str, base_url: str = "") -> List[FontFace]:
    return [
        FontFace(subset=m.group("subset"), body=m.group("body"), base_url=base_url)
        for m in FONT_FACE_RE.finditer(css)
    ]


def filter_subsets(faces: List[FontFace], allowed: List[str]) -> List[FontFace]:
    """Keep faces whose subset is allowed; an empty allow-list keeps all.

    Blocks without a subset comment are never dropped.
    """
    if not allowed:
        return list(faces)
    keep = set(allowed)
    return [f for f in faces if f.subset is None or f.subset in keep]


def minify_css(css: str) -> str:
    css = COMMENT_RE.sub("", css)
    css = re.sub(r"\s+", " ", css)
    css = re.sub(r"\s*([{}:;,])\s*", r"\1", css)
    css = css.replace(";}", "}")
    return css.strip()
