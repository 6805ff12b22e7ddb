"""
Response viewer model for the developer console.

Turns a relay envelope (or an error) into what the console shows: a
pretty body, a sandboxed preview of embedded third-party HTML, a parsed
table scraped from that HTML, and the header dump. Nothing here raises
on bad upstream data; unusable parts simply do not appear.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal

from bs4 import NavigableString, Tag
from bs4.element import Comment

from ..schemas.proxy import ProxyResponseEnvelope
from .html import HtmlParser, SoupHtmlParser, build_sandbox_document, render_preview_iframe
from .validation import dump_json

logger = logging.getLogger(__name__)

Tab = Literal["body", "preview", "parsed", "headers"]

_HARAKAT = re.compile(r"[\u064B-\u065F\u0670\u06D6-\u06ED]")
_ALEF_VARIANTS = re.compile(r"[\u0623\u0625\u0622]")
_WHITESPACE = re.compile(r"\s+")

# Field labels used by the embedded hadith HTML
LABEL_RAWI = "الراوي"
LABEL_MUHADDITH = "المحدث"
LABEL_SOURCE = "المصدر"
LABEL_PAGE = "الصفحة أو الرقم"
LABEL_HUKM = "خلاصة حكم المحدث"


def normalize_arabic_key(text: str) -> str:
    """
    Normalize a field label for lookup.

    Drops colons, diacritics and whitespace and unifies alef/yaa variants.
    """
    value = str(text or "").replace(":", "").replace("\uff1a", "")
    value = _HARAKAT.sub("", value)
    value = _ALEF_VARIANTS.sub("\u0627", value)
    value = value.replace("\u0649", "\u064a")
    return _WHITESPACE.sub("", value).strip()


def clean_value(text: str) -> str:
    """Collapse whitespace (including nbsp) and trim."""
    return _WHITESPACE.sub(" ", str(text or "").replace("\u00a0", " ")).strip()


@dataclass
class ParsedHadith:
    index: int
    text: str
    rawi: str | None = None
    muhaddith: str | None = None
    source: str | None = None
    page_or_number: str | None = None
    hukm: str | None = None


def _node_text(node: Any) -> str:
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return str(node)
    if isinstance(node, Tag):
        return node.get_text()
    return ""


def _is_subtitle(node: Any) -> bool:
    return (
        isinstance(node, Tag)
        and node.name == "span"
        and "info-subtitle" in (node.get("class") or [])
    )


def parse_info_block(info: Tag) -> dict[str, str]:
    """
    Split an info block into labelled fields.

    Each ``span.info-subtitle`` starts a field; the text of the following
    siblings up to the next subtitle becomes its value. Text before the
    first subtitle is ignored, empty values are dropped and a repeated
    label keeps its first value.
    """
    fields: dict[str, str] = {}
    current_key: str | None = None
    buffer: list[str] = []

    def flush():
        if current_key:
            value = clean_value(" ".join(buffer))
            if value:
                fields.setdefault(current_key, value)

    for node in info.children:
        if _is_subtitle(node):
            flush()
            buffer = []
            current_key = clean_value(node.get_text())
            continue
        if not current_key:
            continue
        text = clean_value(_node_text(node))
        if text:
            buffer.append(text)

    flush()
    return fields


def parse_hadith_html(html: str, parser: HtmlParser | None = None) -> list[ParsedHadith]:
    """
    Extract structured rows from embedded hadith search HTML.

    The Nth ``div.hadith`` is paired with the Nth ``div.hadith-info``,
    stopping at the shorter list. Returns [] when nothing matches or the
    markup cannot be parsed.
    """
    source = str(html or "").strip()
    if not source:
        return []

    parser = parser or SoupHtmlParser()
    try:
        document = parser.parse(source)
        texts = parser.query(document, "div.hadith")
        infos = parser.query(document, "div.hadith-info")
    except Exception as exc:
        logger.debug("Embedded HTML could not be parsed: %s", exc)
        return []

    wanted = {
        "rawi": normalize_arabic_key(LABEL_RAWI),
        "muhaddith": normalize_arabic_key(LABEL_MUHADDITH),
        "source": normalize_arabic_key(LABEL_SOURCE),
        "page_or_number": normalize_arabic_key(LABEL_PAGE),
        "hukm": normalize_arabic_key(LABEL_HUKM),
    }

    rows = []
    for i, (text_el, info_el) in enumerate(zip(texts, infos)):
        # First label wins when two normalize to the same key
        fields: dict[str, str] = {}
        for label, value in parse_info_block(info_el).items():
            fields.setdefault(normalize_arabic_key(label), value)
        rows.append(ParsedHadith(
            index=i + 1,
            text=clean_value(text_el.get_text()),
            **{attr: fields.get(key) for attr, key in wanted.items()},
        ))
    return rows


@dataclass
class ViewError:
    """An error shown instead of a response."""
    message: str
    status: int | None = None
    time_ms: int | None = None


def status_class(status: int | None) -> str:
    """Badge colour class for a status code."""
    if status is None:
        return "unknown"
    if 200 <= status < 300:
        return "success"
    if 300 <= status < 400:
        return "redirect"
    if 400 <= status < 500:
        return "client_error"
    if status >= 500:
        return "server_error"
    return "unknown"


_MISSING = object()


@dataclass
class ResponseView:
    """
    What the console renders for one response or error.

    Attributes:
        response: Envelope from the relay, if the call succeeded
        error: Error to show instead, if it did not
        tab: Currently selected tab
        parser: HtmlParser used for the preview and parsed table
    """
    response: ProxyResponseEnvelope | None = None
    error: ViewError | None = None
    tab: Tab = "body"
    parser: HtmlParser = field(default_factory=SoupHtmlParser)

    def __post_init__(self):
        self._reset_cache()

    def _reset_cache(self):
        self._parsed_json = _MISSING
        self._parsed_rows = None
        self._srcdoc = None

    @property
    def parsed_json(self) -> Any:
        """Parsed body for JSON responses; None when absent or unparseable."""
        if self._parsed_json is _MISSING:
            value = None
            if self.response is not None and self.response.is_json:
                try:
                    value = json.loads(self.response.body_text)
                except (ValueError, RecursionError):
                    value = None
            self._parsed_json = value
        return self._parsed_json

    @property
    def pretty_body(self) -> str:
        if self.response is None:
            return self.error.message if self.error else ""
        if not self.response.is_json:
            return self.response.body_text
        if self.parsed_json is None and self.response.body_text.strip() != "null":
            return self.response.body_text
        try:
            return dump_json(self.parsed_json)
        except (TypeError, ValueError):
            return self.response.body_text

    @property
    def embedded_html(self) -> str | None:
        """The ``ahadith.result`` HTML string, trimmed, if present."""
        data = self.parsed_json
        if not isinstance(data, dict):
            return None
        ahadith = data.get("ahadith")
        raw = ahadith.get("result") if isinstance(ahadith, dict) else None
        if not isinstance(raw, str):
            return None
        return raw.strip() or None

    @property
    def preview_srcdoc(self) -> str:
        if self._srcdoc is None:
            srcdoc = ""
            if self.embedded_html:
                try:
                    srcdoc = build_sandbox_document(self.embedded_html, self.parser)
                except Exception as exc:
                    logger.debug("Preview dropped: %s", exc)
                    srcdoc = ""
            self._srcdoc = srcdoc
        return self._srcdoc

    @property
    def preview_iframe(self) -> str:
        return render_preview_iframe(self.preview_srcdoc) if self.has_preview else ""

    @property
    def has_preview(self) -> bool:
        return bool(self.preview_srcdoc)

    @property
    def parsed_rows(self) -> list[ParsedHadith]:
        if self._parsed_rows is None:
            html = self.embedded_html
            self._parsed_rows = parse_hadith_html(html, self.parser) if html else []
        return self._parsed_rows

    @property
    def has_parsed(self) -> bool:
        return len(self.parsed_rows) > 0

    @property
    def header_entries(self) -> list[tuple[str, str]]:
        if self.response is None:
            return []
        return list(self.response.headers.items())

    @property
    def header_count(self) -> int:
        return len(self.header_entries)

    @property
    def tabs(self) -> list[Tab]:
        tabs: list[Tab] = ["body"]
        if self.has_preview:
            tabs.append("preview")
        if self.has_parsed:
            tabs.append("parsed")
        tabs.append("headers")
        return tabs

    @property
    def status_class(self) -> str:
        if self.response is not None:
            return status_class(self.response.status)
        if self.error is not None:
            return status_class(self.error.status)
        return "unknown"

    def select_tab(self, tab: Tab) -> Tab:
        """Select a tab; unavailable tabs leave the selection unchanged."""
        if tab in self.tabs:
            self.tab = tab
        return self.tab

    def apply_auto_switch(self) -> Tab:
        """
        Adjust the selected tab after a response arrives.

        A stale preview/parsed selection falls back to body when there is
        no preview; a fresh preview pulls the body tab over to preview.
        """
        if not self.has_preview:
            if self.tab in ("preview", "parsed"):
                self.tab = "body"
        elif self.response is not None and self.tab == "body":
            self.tab = "preview"
        return self.tab

    def show(
        self,
        response: ProxyResponseEnvelope | None = None,
        error: ViewError | None = None,
    ) -> Tab:
        """Replace the displayed response, keeping the tab selection rules."""
        self.response = response
        self.error = error
        self._reset_cache()
        return self.apply_auto_switch()

    def to_payload(self) -> dict:
        """Serialize the view for API consumers."""
        return {
            "tab": self.tab,
            "tabs": list(self.tabs),
            "statusClass": self.status_class,
            "status": self.response.status if self.response else (self.error.status if self.error else None),
            "statusText": self.response.status_text if self.response else None,
            "timeMs": self.response.time_ms if self.response else (self.error.time_ms if self.error else None),
            "isJson": self.response.is_json if self.response else False,
            "error": self.error.message if self.error else None,
            "body": self.pretty_body,
            "previewSrcdoc": self.preview_srcdoc or None,
            "previewIframe": self.preview_iframe or None,
            "parsed": [
                {
                    "index": row.index,
                    "text": row.text,
                    "rawi": row.rawi,
                    "muhaddith": row.muhaddith,
                    "source": row.source,
                    "pageOrNumber": row.page_or_number,
                    "hukm": row.hukm,
                }
                for row in self.parsed_rows
            ],
            "headers": [{"name": k, "value": v} for k, v in self.header_entries],
            "headerCount": self.header_count,
        }
