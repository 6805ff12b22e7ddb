"""
Tests for the response viewer: pretty body, sandboxed preview, parsed
hadith rows, header dump and tab selection.
"""

import json

import pytest

from request_relay.schemas.proxy import ProxyResponseEnvelope
from request_relay.services.html import build_sandbox_document, render_preview_iframe, sanitize_html
from request_relay.services.response_viewer import (
    ResponseView,
    ViewError,
    normalize_arabic_key,
    parse_hadith_html,
    status_class,
)


HADITH_HTML = (
    '<div class="hadith">إنما الأعمال بالنيات</div>'
    '<div class="hadith-info">'
    '<span class="info-subtitle">الراوي:</span> عمر بن الخطاب '
    '<span class="info-subtitle">المحدث:</span> البخاري '
    '<span class="info-subtitle">المصدر:</span> صحيح البخاري '
    '<span class="info-subtitle">الصفحة أو الرقم:</span> 1 '
    '<span class="info-subtitle">خلاصة حكم المحدث:</span> <span>[صحيح]</span>'
    '</div>'
    '<div class="hadith">نص بلا معلومات</div>'
)


def envelope(body, content_type="application/json", status=200, headers=None):
    if not isinstance(body, str):
        body = json.dumps(body, ensure_ascii=False)
    return ProxyResponseEnvelope(
        status=status,
        status_text="OK",
        headers=headers if headers is not None else {"content-type": content_type},
        body_text=body,
        time_ms=12,
        is_json="json" in content_type,
    )


def dorar_envelope(html=HADITH_HTML):
    return envelope({"ahadith": {"result": html}})


class TestArabicKeys:

    def test_colons_and_whitespace_are_dropped(self):
        assert normalize_arabic_key(" الراوي : ") == normalize_arabic_key("الراوي")

    def test_diacritics_are_ignored(self):
        assert normalize_arabic_key("المُحَدِّث") == normalize_arabic_key("المحدث")

    def test_alef_and_yaa_variants_are_unified(self):
        assert normalize_arabic_key("إلراوى") == normalize_arabic_key("الراوي")


class TestParseHadithHtml:

    def test_rows_pair_text_with_info(self):
        rows = parse_hadith_html(HADITH_HTML)
        # Second hadith has no info block
        assert len(rows) == 1
        row = rows[0]
        assert row.index == 1
        assert row.text == "إنما الأعمال بالنيات"
        assert row.rawi == "عمر بن الخطاب"
        assert row.muhaddith == "البخاري"
        assert row.source == "صحيح البخاري"
        assert row.page_or_number == "1"
        assert row.hukm == "[صحيح]"

    def test_label_variants_still_match(self):
        html = (
            '<div class="hadith">نص</div><div class="hadith-info">'
            '<span class="info-subtitle">المُحدِّث :</span> مسلم'
            '<span class="info-subtitle">الراوى</span> أنس'
            '</div>'
        )
        row = parse_hadith_html(html)[0]
        assert row.muhaddith == "مسلم"
        assert row.rawi == "أنس"
        assert row.source is None

    def test_first_of_two_equivalent_labels_wins(self):
        html = (
            '<div class="hadith">نص</div><div class="hadith-info">'
            '<span class="info-subtitle">المحدث:</span> مسلم'
            '<span class="info-subtitle">المُحدِّث:</span> البخاري'
            '<span class="info-subtitle">المحدث:</span> الترمذي'
            '</div>'
        )
        row = parse_hadith_html(html)[0]
        assert row.muhaddith == "مسلم"

    def test_comments_and_leading_text_are_ignored(self):
        html = (
            '<div class="hadith">نص</div><div class="hadith-info">'
            'مقدمة <span class="info-subtitle">المصدر:</span><!-- note --> الموطأ'
            '</div>'
        )
        row = parse_hadith_html(html)[0]
        assert row.source == "الموطأ"
        assert row.rawi is None

    @pytest.mark.parametrize("html", ["", "   ", "<p>no hadith here</p>", "<div class='hadith'>x</div>"])
    def test_nothing_to_parse(self, html):
        assert parse_hadith_html(html) == []

    def test_parser_failure_yields_no_rows(self):
        class BrokenParser:
            def parse(self, html):
                raise RuntimeError("boom")

        assert parse_hadith_html(HADITH_HTML, parser=BrokenParser()) == []


class TestSanitizer:

    def test_active_content_is_removed(self):
        html = (
            '<p>keep</p><script>alert(1)</script><style>p{}</style>'
            '<iframe src="https://evil.example.com"></iframe><object></object><embed src="x"/>'
        )
        clean = sanitize_html(html)
        assert "<p>keep</p>" in clean
        for tag in ("script", "style", "iframe", "object", "embed"):
            assert f"<{tag}" not in clean
        assert "alert(1)" not in clean

    def test_sandbox_document_is_rtl(self):
        doc = build_sandbox_document("<p>x</p>")
        assert doc.startswith("<!doctype html>")
        assert 'dir="rtl"' in doc
        assert "<body><p>x</p></body>" in doc

    def test_iframe_sandbox_is_empty(self):
        frame = render_preview_iframe('<p title="a">x</p>')
        assert 'sandbox=""' in frame
        assert 'referrerpolicy="no-referrer"' in frame
        assert "&quot;" in frame
        assert 'srcdoc="<' not in frame


class TestResponseView:

    def test_json_body_is_pretty_printed(self):
        view = ResponseView()
        view.show(response=envelope('{"city":"طرابلس","n":[1,2]}'))
        assert view.pretty_body == '{\n  "city": "طرابلس",\n  "n": [\n    1,\n    2\n  ]\n}'

    def test_malformed_json_falls_back_to_raw_text(self):
        raw = '{ "ok": true, "note": "broken"'
        view = ResponseView()
        view.show(response=envelope(raw))
        assert view.parsed_json is None
        assert view.pretty_body == raw
        assert view.tabs == ["body", "headers"]

    def test_json_null_body(self):
        view = ResponseView()
        view.show(response=envelope("null"))
        assert view.pretty_body == "null"

    def test_text_body_is_shown_raw(self):
        view = ResponseView()
        view.show(response=envelope("<h1>hi</h1>", content_type="text/html"))
        assert view.pretty_body == "<h1>hi</h1>"
        assert view.has_preview is False

    def test_embedded_html_enables_preview_and_parsed(self):
        view = ResponseView()
        view.show(response=dorar_envelope())
        assert view.tabs == ["body", "preview", "parsed", "headers"]
        assert view.has_parsed is True
        assert 'sandbox=""' in view.preview_iframe

    def test_preview_never_contains_scripts(self):
        view = ResponseView()
        view.show(response=dorar_envelope("<script>alert(document.cookie)</script><b>ok</b>"))
        assert view.has_preview is True
        assert "<script" not in view.preview_srcdoc
        assert "alert(" not in view.preview_srcdoc
        assert "<b>ok</b>" in view.preview_srcdoc
        assert view.has_parsed is False

    @pytest.mark.parametrize("body", [
        {"ahadith": {"result": "   "}},
        {"ahadith": {"result": 5}},
        {"ahadith": "x"},
        ["not", "an", "object"],
    ])
    def test_unusable_embedded_html_has_no_preview(self, body):
        view = ResponseView()
        view.show(response=envelope(body))
        assert view.has_preview is False
        assert view.embedded_html is None

    def test_header_entries_keep_order(self):
        headers = {"content-type": "application/json", "x-b": "2", "x-a": "1"}
        view = ResponseView()
        view.show(response=envelope("{}", headers=headers))
        assert view.header_entries == list(headers.items())
        assert view.header_count == 3


class TestTabSelection:

    def test_fresh_preview_pulls_body_tab_to_preview(self):
        view = ResponseView(tab="body")
        assert view.show(response=dorar_envelope()) == "preview"

    def test_headers_tab_is_kept_when_preview_arrives(self):
        view = ResponseView(tab="headers")
        assert view.show(response=dorar_envelope()) == "headers"

    def test_stale_parsed_tab_falls_back_to_body(self):
        view = ResponseView()
        view.show(response=dorar_envelope())
        view.select_tab("parsed")
        assert view.show(response=envelope({"plain": True})) == "body"

    def test_headers_tab_survives_plain_response(self):
        view = ResponseView(tab="headers")
        assert view.show(response=envelope({"plain": True})) == "headers"

    def test_unavailable_tab_cannot_be_selected(self):
        view = ResponseView()
        view.show(response=envelope({"plain": True}))
        assert view.select_tab("preview") == "body"

    def test_error_state(self):
        view = ResponseView(tab="preview")
        view.show(error=ViewError(message="Host not allowed", status=403))
        assert view.tab == "body"
        payload = view.to_payload()
        assert payload["error"] == "Host not allowed"
        assert payload["status"] == 403
        assert payload["statusClass"] == "client_error"
        assert payload["body"] == "Host not allowed"
        assert payload["headers"] == []


class TestPayload:

    def test_payload_is_camel_case(self):
        view = ResponseView()
        view.show(response=dorar_envelope())
        payload = view.to_payload()
        assert payload["tab"] == "preview"
        assert payload["statusClass"] == "success"
        assert payload["timeMs"] == 12
        assert payload["isJson"] is True
        assert payload["parsed"][0]["pageOrNumber"] == "1"
        assert payload["headers"] == [{"name": "content-type", "value": "application/json"}]
        assert payload["headerCount"] == 1
        assert payload["previewIframe"].startswith("<iframe")


@pytest.mark.parametrize("status,expected", [
    (200, "success"), (204, "success"), (302, "redirect"), (404, "client_error"),
    (503, "server_error"), (None, "unknown"), (101, "unknown"),
])
def test_status_class(status, expected):
    assert status_class(status) == expected
