"""
Tests for the console's pre-flight URL and JSON validation.
"""

import json

import pytest
from hypothesis import given, strategies as st, settings as hyp_settings

from request_relay.config import RelaySettings
from request_relay.services.validation import format_json, validate_json, validate_url


POLICY = RelaySettings()

json_values = st.recursive(
    st.none()
    | st.booleans()
    | st.integers(min_value=-10 ** 12, max_value=10 ** 12)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=20),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=20,
)


class TestValidateUrl:

    def test_relative_mock_url(self):
        check = validate_url("/api/mock/users", POLICY)
        assert check.ok is True
        assert check.kind == "relative"
        assert check.normalized == "/api/mock/users"
        assert check.error is None

    def test_allowlisted_absolute_url(self):
        check = validate_url("https://api.github.com/", POLICY)
        assert check.ok is True
        assert check.kind == "absolute"

    def test_metadata_address_is_rejected(self):
        check = validate_url("http://169.254.169.254/latest/meta-data", POLICY)
        assert check.ok is False
        assert check.error

    def test_empty_url(self):
        check = validate_url("", POLICY)
        assert check.ok is False
        assert check.error == "URL is required"

    @given(
        scheme=st.sampled_from(["http", "ftp", "ws", "wss", "file", "gopher", "HTTP"]),
        host=st.sampled_from(sorted(POLICY.allowed_external_hosts)),
        path=st.text(alphabet="abcxyz/-_", max_size=12),
    )
    @hyp_settings(max_examples=100)
    def test_non_https_schemes_are_rejected(self, scheme, host, path):
        check = validate_url(f"{scheme}://{host}/{path}", POLICY)
        assert check.ok is False

    @given(host=st.sampled_from(["10.0.0.1", "127.0.0.1", "192.168.0.10", "[fc00::1]", "[::ffff:127.0.0.1]"]))
    def test_private_ip_urls_are_rejected(self, host):
        assert validate_url(f"https://{host}/", POLICY).ok is False


class TestValidateJson:

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_blank_body_is_valid(self, text):
        check = validate_json(text)
        assert check.ok is True
        assert check.value is None

    def test_valid_json(self):
        check = validate_json('{"name": "Aisha", "tags": [1, 2]}')
        assert check.ok is True
        assert check.value == {"name": "Aisha", "tags": [1, 2]}

    @pytest.mark.parametrize("text", ['{not json', '{"a":', "{'a': 1}", "[1, 2,]", "nope"])
    def test_invalid_json_reports_parser_message(self, text):
        check = validate_json(text)
        assert check.ok is False
        assert check.error

    def test_deeply_nested_json_fails_cleanly(self):
        check = validate_json("[" * 100000 + "]" * 100000)
        assert check.ok is False

    @pytest.mark.parametrize("text", ["1" * 5000, "[" + "1" * 5000 + "]"])
    def test_overlong_integer_fails_cleanly(self, text):
        check = validate_json(text)
        assert check.ok is False
        assert check.error

    @pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity", "[NaN]", '{"a": Infinity}'])
    def test_non_json_constants_are_rejected(self, text):
        check = validate_json(text)
        assert check.ok is False
        assert check.value is None


class TestFormatJson:

    def test_two_space_indent(self):
        assert format_json('{"a":1,"b":[true,null]}').formatted == (
            '{\n  "a": 1,\n  "b": [\n    true,\n    null\n  ]\n}'
        )

    def test_non_ascii_is_kept(self):
        assert format_json('{"city":"طرابلس"}').formatted == '{\n  "city": "طرابلس"\n}'

    def test_blank_formats_to_empty(self):
        result = format_json("  ")
        assert result.ok is True
        assert result.formatted == ""

    def test_invalid_json_is_not_formatted(self):
        result = format_json("{bad")
        assert result.ok is False
        assert result.formatted is None
        assert result.error

    @pytest.mark.parametrize("text", ["NaN", "1" * 5000])
    def test_unparseable_numbers_are_not_formatted(self, text):
        result = format_json(text)
        assert result.ok is False
        assert result.formatted is None

    @given(value=json_values)
    @hyp_settings(max_examples=200)
    def test_formatting_is_idempotent(self, value):
        once = format_json(json.dumps(value)).formatted
        assert format_json(once).formatted == once

    @given(value=json_values)
    def test_formatting_preserves_value(self, value):
        formatted = format_json(json.dumps(value)).formatted
        assert json.loads(formatted) == value
