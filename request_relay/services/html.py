"""
HTML handling for the response viewer.

Third-party HTML is only ever parsed, stripped and re-serialized here;
nothing in this module executes markup. Parsing goes through a small
``HtmlParser`` interface so the backend can be swapped.
"""

from html import escape
from typing import Any, Protocol

from bs4 import BeautifulSoup

# Elements removed before embedded HTML is rendered anywhere
STRIPPED_ELEMENTS = ("script", "style", "iframe", "object", "embed")

_SANDBOX_STYLE = """
  :root{color-scheme:light;}
  body{font-family:ui-sans-serif,system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial; padding:12px; line-height:1.7; direction:rtl; text-align:right;}
  .hadith{margin:0 0 12px;}
  .hadith-info{margin:6px 0 14px; color:#475569; font-size:13px;}
  .search-keys{background:rgba(245,158,11,.18); border:1px solid rgba(245,158,11,.25); padding:0 3px; border-radius:6px;}
  a{color:#0ea5e9; text-decoration:none;}
  a:hover{text-decoration:underline;}
  hr{border:0; border-top:1px solid #e2e8f0; margin:14px 0;}
"""


class HtmlParser(Protocol):
    """Minimal document interface used by the viewer."""

    def parse(self, html: str) -> Any:
        ...

    def query(self, document: Any, selector: str) -> list[Any]:
        ...

    def inner_html(self, document: Any) -> str:
        ...


class SoupHtmlParser:
    """HtmlParser backed by BeautifulSoup's ``html.parser`` builder."""

    features = "html.parser"

    def parse(self, html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", self.features)

    def query(self, document: BeautifulSoup, selector: str) -> list[Any]:
        return list(document.select(selector))

    def inner_html(self, document: BeautifulSoup) -> str:
        root = document.body or document
        return root.decode_contents()


def sanitize_html(html: str, parser: HtmlParser | None = None) -> str:
    """
    Remove script, style, iframe, object and embed elements.

    Args:
        html: Untrusted HTML fragment
        parser: HtmlParser to use (defaults to BeautifulSoup)

    Returns:
        The remaining markup as an HTML string
    """
    parser = parser or SoupHtmlParser()
    document = parser.parse(str(html or ""))
    for element in parser.query(document, ", ".join(STRIPPED_ELEMENTS)):
        element.decompose()
    return parser.inner_html(document)


def build_sandbox_document(html: str, parser: HtmlParser | None = None) -> str:
    """Wrap a sanitized fragment in a standalone RTL document for ``srcdoc``."""
    safe_inner = sanitize_html(html, parser)
    return (
        '<!doctype html><html lang="ar" dir="rtl"><head><meta charset="utf-8"/>'
        '<meta name="viewport" content="width=device-width, initial-scale=1"/>'
        f"<style>{_SANDBOX_STYLE}</style></head><body>{safe_inner}</body></html>"
    )


def render_preview_iframe(srcdoc: str, title: str = "Preview") -> str:
    """
    Render the preview frame.

    The sandbox attribute is always empty: no scripts, no same-origin
    access, no forms.
    """
    return (
        f'<iframe title="{escape(title, quote=True)}" sandbox="" '
        f'referrerpolicy="no-referrer" srcdoc="{escape(srcdoc, quote=True)}"></iframe>'
    )
