"""
Blog post rendering: markdown with admonitions in, HTML fragment out.

Two passes:

1. `preprocess_admonitions` rewrites ``:::kind Title`` / ``!!! kind Title``
   blocks into tagged containers. Unknown kinds are left untouched.
2. Python-Markdown converts the result (tables, footnotes, hard line breaks,
   markdown inside the admonition containers) with a few blog-specific
   renderings: captioned figures for images, scrollable table wrappers,
   styled blockquotes and Pygments-highlighted fenced code.

The output is trusted HTML. Post bodies can only be written through the
authenticated admin endpoints, and raw HTML in them is passed through as-is.
"""

import html
import logging
import re
import xml.etree.ElementTree as etree
from typing import Dict, List

import markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

ADMONITION_ICONS = {
    "note": "ℹ️", "info": "ℹ️",
    "tip": "💡", "success": "✅", "hint": "💡",
    "warning": "⚠️", "caution": "⚠️", "attention": "⚠️",
    "danger": "🚨", "error": "❌", "bug": "🐛",
    "example": "📝", "abstract": "📋", "question": "❓",
    "quote": "💬", "failure": "❗",
}

# Non-recursive: the first bare closing delimiter ends the block
ADMONITION_RE = re.compile(
    r"^(?::::|!!!) *(\w+)(?: +(.+))?\n([\s\S]*?)^(?::::|!!!)[ \t]*$",
    re.MULTILINE,
)

FENCE_RE = re.compile(
    r"^(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[\w#+.-]*)[^\n]*\n"
    r"(?P<code>.*?)(?<=\n)(?P=fence)[ \t]*$",
    re.MULTILINE | re.DOTALL,
)


def _admonition_html(match: "re.Match") -> str:
    kind = match.group(1).lower()
    if kind not in ADMONITION_ICONS:
        return match.group(0)
    title = (match.group(2) or "").strip() or kind.capitalize()
    body = match.group(3).strip()
    return (
        f'\n\n<div class="admonition admonition-{kind}" markdown="1">\n'
        f'<p class="admonition-title">{ADMONITION_ICONS[kind]} {html.escape(title)}</p>\n\n'
        f"{body}\n\n"
        f"</div>\n"
    )


def preprocess_admonitions(text: str) -> str:
    return ADMONITION_RE.sub(_admonition_html, text)


def highlight_code(code: str, lang: str = "") -> str:
    """Declared lexer, else a guessed one, else escaped plain text."""
    lexer = None
    if lang:
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            lexer = None
    if lexer is None:
        try:
            lexer = guess_lexer(code)
        except ClassNotFound:
            return html.escape(code, quote=False)
    try:
        return highlight(code, lexer, HtmlFormatter(nowrap=True))
    except Exception:
        logger.exception("Highlighting a %s code block failed", lang or "plain")
        return html.escape(code, quote=False)


def render_code_block(code: str, lang: str = "") -> str:
    label = f'<span class="code-lang-label">{html.escape(lang)}</span>' if lang else ""
    css = f"highlight language-{html.escape(lang)}" if lang else "highlight"
    return (
        f'<div class="code-block-wrapper">{label}'
        f'<pre><code class="{css}">{highlight_code(code, lang)}</code></pre></div>'
    )


class HighlightedFencePreprocessor(Preprocessor):
    """Replace fenced code blocks with stashed, highlighted HTML."""

    def run(self, lines: List[str]) -> List[str]:
        text = "\n".join(lines)
        while True:
            m = FENCE_RE.search(text)
            if not m:
                break
            block = render_code_block(m.group("code"), m.group("lang"))
            placeholder = self.md.htmlStash.store(block)
            text = f"{text[:m.start()]}\n{placeholder}\n{text[m.end():]}"
        return text.split("\n")


def _wrap(element: etree.Element, parent: etree.Element, tag: str, attrib: Dict[str, str]) -> etree.Element:
    index = list(parent).index(element)
    wrapper = etree.Element(tag, attrib)
    wrapper.tail, element.tail = element.tail, None
    parent.remove(element)
    parent.insert(index, wrapper)
    wrapper.append(element)
    return wrapper


class BlogTreeprocessor(Treeprocessor):
    def run(self, root: etree.Element):
        parents = {child: parent for parent in root.iter() for child in parent}

        for table in list(root.iter("table")):
            _wrap(table, parents[table], "div", {"class": "blog-table-wrapper"})

        for quote in root.iter("blockquote"):
            quote.set("class", "blog-blockquote")

        for img in list(root.iter("img")):
            self._figure(img, parents)

    def _figure(self, img: etree.Element, parents: dict):
        parent = parents[img]
        img.set("loading", "lazy")
        alt = img.get("alt", "")
        figure = _wrap(img, parent, "figure", {"class": "blog-figure"})
        if alt:
            caption = etree.SubElement(figure, "figcaption")
            caption.text = alt

        # an image alone in its paragraph replaces the paragraph
        grandparent = parents.get(parent)
        if (
            parent.tag == "p"
            and grandparent is not None
            and len(parent) == 1
            and not (parent.text or "").strip()
            and not (figure.tail or "").strip()
        ):
            index = list(grandparent).index(parent)
            figure.tail = parent.tail
            grandparent.remove(parent)
            grandparent.insert(index, figure)


class BlogExtension(Extension):
    def extendMarkdown(self, md):
        md.preprocessors.register(HighlightedFencePreprocessor(md), "highlighted_fence", 25)
        md.treeprocessors.register(BlogTreeprocessor(md), "blog_elements", 1)


MD_EXTENSION_CONFIGS = {
    "footnotes": {"BACKLINK_TEXT": "&#8617;"},
}
BASE_MD_EXTENSIONS = ["tables", "footnotes", "nl2br", "md_in_html", "sane_lists"]


def _markdown_renderer() -> markdown.Markdown:
    return markdown.Markdown(
        extensions=[*BASE_MD_EXTENSIONS, BlogExtension()],
        extension_configs=MD_EXTENSION_CONFIGS,
    )


def render_markdown(text: str) -> str:
    return _markdown_renderer().convert(preprocess_admonitions(text or ""))
