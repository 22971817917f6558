"""Turn fetched HTML into LLM-ready text and pull out embedded data.

Primary pass: a structural walk with BeautifulSoup that keeps the document
outline (headings become ``#`` lines, list items ``- `` lines, table rows
``a | b`` lines).  Listing pages are mostly label/value fragments rather than
prose, which boilerplate removers tend to discard, so the structural pass
runs first.

Fallback: ``trafilatura`` when the structural pass yields nothing (e.g. the
page is one big text node or the markup is badly broken).
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import trafilatura  # type: ignore[import-untyped]
from bs4 import BeautifulSoup, NavigableString, Tag

from listing_importer.extraction.config import MAX_CONTENT_BYTES, MIN_PARAGRAPH_CHARS

logger = logging.getLogger(__name__)

_SKIP_TAGS: frozenset[str] = frozenset(
    {"script", "style", "noscript", "head", "meta", "link", "template", "svg", "iframe"}
)

_INLINE_TAGS: frozenset[str] = frozenset(
    {"a", "abbr", "b", "br", "code", "em", "i", "img", "label", "mark", "small", "span",
     "strong", "sub", "sup", "time", "u", "data"}
)

_HEADING_RE = re.compile(r"^h([1-6])$")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)


# ---------------------------------------------------------------------------
# Structural text pass
# ---------------------------------------------------------------------------


def _text(element: Tag) -> str:
    return " ".join(element.get_text(" ", strip=True).split())


def _element_children(element: Tag) -> list[Tag]:
    return [child for child in element.children if isinstance(child, Tag)]


class _StructuredTextBuilder:
    """Accumulates outline lines while walking the parse tree."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def _push_leaf(self, text: str) -> None:
        if len(text) > 3 and not (self.lines and text in self.lines[-1]):
            self.lines.append(text)

    def _table(self, table: Tag) -> None:
        for row in table.find_all("tr"):
            cells = [_text(cell) for cell in row.find_all(["th", "td"])]
            cells = [cell for cell in cells if cell]
            if cells:
                self.lines.append(" | ".join(cells))
        self.lines.append("")

    def _list(self, element: Tag, ordered: bool) -> None:
        items = [child for child in element.children if isinstance(child, Tag) and child.name == "li"]
        for index, item in enumerate(items, start=1):
            text = _text(item)
            if text:
                self.lines.append(f"{index}. {text}" if ordered else f"- {text}")
        self.lines.append("")

    def visit(self, node: Any) -> None:
        if isinstance(node, NavigableString):
            if type(node) is NavigableString:
                self._push_leaf(" ".join(str(node).split()))
            return
        if not isinstance(node, Tag):
            return
        name = (node.name or "").lower()
        if name in _SKIP_TAGS:
            return

        heading = _HEADING_RE.match(name)
        if heading:
            text = _text(node)
            if text:
                self.lines.extend(["", "#" * int(heading.group(1)) + " " + text, ""])
            return
        if name == "p":
            text = _text(node)
            if len(text) > MIN_PARAGRAPH_CHARS:
                self.lines.extend([text, ""])
            return
        if name in ("ul", "ol"):
            self._list(node, ordered=name == "ol")
            return
        if name == "table":
            self._table(node)
            return

        children = _element_children(node)
        if children and any((child.name or "").lower() not in _INLINE_TAGS for child in children):
            for child in node.children:
                self.visit(child)
            return
        self._push_leaf(_text(node))


def html_to_structured_text(html: str) -> str:
    """Render *html* as outline text.  Returns ``""`` if nothing readable."""
    if not html or not html.strip():
        return ""
    soup = BeautifulSoup(html, "html.parser")
    builder = _StructuredTextBuilder()
    for child in soup.children:
        builder.visit(child)
    text = "\n".join(builder.lines)
    text = _TRAILING_WS_RE.sub("", text)
    return _BLANK_RUN_RE.sub("\n\n", text).strip()


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------


def finalize_text(text: str | None, *, url: str = "") -> str:
    """Strip NUL bytes and cap *text* at :data:`MAX_CONTENT_BYTES`."""
    if not text:
        return ""
    text = text.replace("\x00", "")
    encoded = text.encode("utf-8")
    if len(encoded) > MAX_CONTENT_BYTES:
        text = encoded[:MAX_CONTENT_BYTES].decode("utf-8", errors="ignore")
        logger.debug("scraper: truncated normalized text to %d bytes for %s", MAX_CONTENT_BYTES, url)
    return text.strip()


def normalize_html(html: str | None, *, url: str = "") -> str:
    """Structural pass first, trafilatura if that yields nothing."""
    if not html:
        return ""
    text = html_to_structured_text(html)
    if not text:
        try:
            text = trafilatura.extract(
                html,
                url=url or None,
                include_comments=False,
                include_tables=True,
                output_format="txt",
            ) or ""
        except Exception as exc:  # noqa: BLE001
            logger.warning("scraper: trafilatura extraction failed for %s: %s", url, exc)
            text = ""
    return finalize_text(text, url=url)


# ---------------------------------------------------------------------------
# Embedded structured data
# ---------------------------------------------------------------------------


def _load_json(raw: str | None, label: str) -> Any:
    if not raw or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.debug("scraper: unparseable %s block", label)
        return None


def extract_structured_data(html: str | None) -> dict[str, Any] | None:
    """Collect machine-readable data embedded in the page.

    Must run on the unprocessed HTML: host processors drop ``<head>`` and
    every ``<script>``.

    Returns a dict with any of ``json_ld`` (list), ``next_data``,
    ``open_graph`` and ``metadata``, or ``None`` if the page has none.
    """
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    data: dict[str, Any] = {}

    json_ld = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        parsed = _load_json(script.string, "JSON-LD")
        if parsed is not None:
            json_ld.append(parsed)
    if json_ld:
        data["json_ld"] = json_ld

    next_script = soup.find("script", id="__NEXT_DATA__")
    if isinstance(next_script, Tag):
        next_data = _load_json(next_script.string, "__NEXT_DATA__")
        if next_data is not None:
            data["next_data"] = next_data

    open_graph = {}
    for meta in soup.find_all("meta"):
        prop = meta.get("property") or ""
        if isinstance(prop, str) and prop.startswith("og:") and meta.get("content"):
            open_graph[prop[3:]] = meta["content"]
    if open_graph:
        data["open_graph"] = open_graph

    metadata: dict[str, str] = {}
    if soup.title and soup.title.string:
        metadata["title"] = soup.title.string.strip()
    description = soup.find("meta", attrs={"name": "description"})
    if isinstance(description, Tag) and description.get("content"):
        metadata["description"] = str(description["content"]).strip()
    canonical = soup.find("link", rel="canonical")
    if isinstance(canonical, Tag) and canonical.get("href"):
        metadata["canonical"] = str(canonical["href"])
    if metadata:
        data["metadata"] = metadata

    return data or None
