# src/tasks/transforms.py - v1
"""Pluggable per-asset transforms used by the build tasks.

The pipeline treats these as opaque functions. The defaults are
deliberately conservative: they collapse whitespace and comments but
never reorder or rename tokens. Swap in real prefixers, minifiers or
image optimizers by passing a custom TransformSet.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path

TextTransform = Callable[[str], str]
BytesTransform = Callable[[bytes], bytes]
Linter = Callable[[Path, str], list[str]]

_CSS_COMMENT = re.compile(r"/\*(?!!).*?\*/", re.DOTALL)
_CSS_SPACE_AROUND = re.compile(r"\s*([{};,>])\s*")
_CSS_SEMI_BEFORE_BRACE = re.compile(r";}")
_HTML_COMMENT = re.compile(r"<!--(?!\[if|<!|\s*build:|\s*endbuild).*?-->", re.DOTALL)
_HTML_RAW_BLOCK = re.compile(
    r"(<(pre|script|style|textarea)\b.*?</\2\s*>)", re.DOTALL | re.IGNORECASE
)
_WHITESPACE = re.compile(r"\s+")


def identity_text(text: str) -> str:
    return text


def identity_bytes(data: bytes) -> bytes:
    return data


def minify_css(text: str) -> str:
    """Strip comments (except /*! ... */) and collapse whitespace."""
    text = _CSS_COMMENT.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    text = _CSS_SPACE_AROUND.sub(r"\1", text)
    text = _CSS_SEMI_BEFORE_BRACE.sub("}", text)
    return text.strip()


def minify_js(text: str) -> str:
    """Drop blank lines and surrounding whitespace on each line."""
    lines = (line.strip() for line in text.splitlines())
    out = "\n".join(line for line in lines if line)
    return out + "\n" if out else ""


def minify_html(text: str) -> str:
    """Remove comments and collapse whitespace runs to one space.

    Conditional comments, build blocks and the contents of pre, script,
    style and textarea elements are kept as they are.
    """
    parts = _HTML_RAW_BLOCK.split(text)
    out: list[str] = []
    # split() with two groups yields: text, whole-block, tag-name, text, ...
    i = 0
    while i < len(parts):
        chunk = _HTML_COMMENT.sub("", parts[i])
        out.append(_WHITESPACE.sub(" ", chunk))
        if i + 1 < len(parts):
            out.append(parts[i + 1])
        i += 3
    return "".join(out).strip()


def no_lint(path: Path, text: str) -> list[str]:
    return []


class TransformSet:
    """Bundle of the transforms the build tasks apply.

    Args:
        prefix_styles: Vendor-prefix a stylesheet (written to the tmp tree).
        minify_css: Minify a stylesheet (written to dist).
        minify_js: Minify a script in dist.
        minify_html: Minify a markup file.
        vulcanize: Flatten the vulcanized elements bundle.
        optimize_image: Compress image bytes.
        lint: Return a list of problems found in a script.
    """

    def __init__(
        self,
        prefix_styles: TextTransform = identity_text,
        minify_css: TextTransform = minify_css,
        minify_js: TextTransform = minify_js,
        minify_html: TextTransform = minify_html,
        vulcanize: TextTransform | None = None,
        optimize_image: BytesTransform = identity_bytes,
        lint: Linter = no_lint,
    ) -> None:
        self.prefix_styles = prefix_styles
        self.minify_css = minify_css
        self.minify_js = minify_js
        self.minify_html = minify_html
        self.vulcanize = vulcanize or minify_html
        self.optimize_image = optimize_image
        self.lint = lint
