from __future__ import annotations

import io
import json
import urllib.error
import urllib.parse
from dataclasses import dataclass
from unittest.mock import patch

import pytest

from grammarfix.analyzer import (
    LanguageToolClient,
    MockAnalyzerClient,
    build_analyzer_client,
    parse_matches,
)
from grammarfix.errors import AnalyzerError


@dataclass
class _FakeResponse:
    body: str

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return self.body.encode("utf-8")


SENTENCE = "This are example sentences with some mistake."

LT_PAYLOAD = {
    "matches": [
        {
            "message": "The verb 'are' does not agree with 'This'.",
            "shortMessage": "Grammatical problem",
            "offset": 5,
            "length": 3,
            "sentence": SENTENCE,
            "replacements": [{"value": "is"}, {"value": "was"}],
            "context": {"text": SENTENCE, "offset": 5, "length": 3},
            "rule": {
                "id": "THIS_NNS_VB",
                "description": "Agreement",
                "issueType": "grammar",
                "category": {"id": "GRAMMAR", "name": "Grammar"},
            },
        },
        {
            "message": "Possible typo",
            "offset": 38,
            "length": 7,
            "replacements": [{"value": "errors"}, {"bogus": 1}],
            "rule": {"id": "X", "description": "Y", "category": {"id": "STYLE", "name": "Style"}},
        },
    ]
}


def test_check_posts_form_encoded_request_and_parses_matches():
    captured = {}

    def _fake_urlopen(req, timeout):  # noqa: ANN001
        captured["url"] = req.full_url
        captured["data"] = urllib.parse.parse_qs(req.data.decode("utf-8"))
        captured["content_type"] = req.get_header("Content-type")
        captured["timeout"] = timeout
        return _FakeResponse(json.dumps(LT_PAYLOAD))

    client = LanguageToolClient(base_url="https://lt.example/", timeout_s=5.0)
    with patch("grammarfix.analyzer.urllib.request.urlopen", side_effect=_fake_urlopen):
        issues = client.check(SENTENCE, "en-GB")

    assert captured["url"] == "https://lt.example/v2/check"
    assert captured["data"]["text"] == [SENTENCE]
    assert captured["data"]["language"] == ["en-GB"]
    assert captured["data"]["level"] == ["picky"]
    assert captured["data"]["enabledOnly"] == ["false"]
    assert captured["content_type"] == "application/x-www-form-urlencoded"
    assert captured["timeout"] == 5.0

    assert len(issues) == 2
    first, second = issues
    assert (first.offset, first.length) == (5, 3)
    assert first.replacements == ("is", "was")
    assert first.rule_id == "THIS_NNS_VB"
    assert first.issue_type == "grammar"
    assert first.category is not None and first.category.name == "Grammar"
    assert first.context is not None and first.context.length == 3
    assert second.replacements == ("errors",)
    assert second.short_message == ""
    assert second.issue_type is None


@pytest.mark.parametrize("text", ["", "   ", "\n\t "])
def test_check_short_circuits_blank_text(text):
    client = LanguageToolClient()
    with patch("grammarfix.analyzer.urllib.request.urlopen") as urlopen:
        assert client.check(text, "en-US") == []
    urlopen.assert_not_called()


def test_check_surfaces_http_error_body_and_status():
    err = urllib.error.HTTPError(
        url="https://api.languagetool.org/v2/check",
        code=429,
        msg="Too Many Requests",
        hdrs=None,
        fp=io.BytesIO(b"Rate limit exceeded"),
    )
    client = LanguageToolClient()
    with patch("grammarfix.analyzer.urllib.request.urlopen", side_effect=err):
        with pytest.raises(AnalyzerError) as excinfo:
            client.check("Some text", "en-US")
    assert excinfo.value.status == 429
    assert excinfo.value.body == "Rate limit exceeded"
    assert "Rate limit exceeded" in str(excinfo.value)


def test_check_wraps_transport_errors():
    client = LanguageToolClient()
    with patch(
        "grammarfix.analyzer.urllib.request.urlopen",
        side_effect=urllib.error.URLError("connection refused"),
    ):
        with pytest.raises(AnalyzerError, match="request failed"):
            client.check("Some text", "en-US")


def test_check_rejects_invalid_json():
    client = LanguageToolClient()
    with patch("grammarfix.analyzer.urllib.request.urlopen", return_value=_FakeResponse("<html>")):
        with pytest.raises(AnalyzerError, match="invalid JSON"):
            client.check("Some text", "en-US")


def test_parse_matches_converts_utf16_offsets():
    text = "I 😀 has a cat"
    # LanguageTool counts the emoji as two UTF-16 units: "has" starts at unit 5.
    payload = {"matches": [{"offset": 5, "length": 3, "message": "m", "replacements": [{"value": "have"}]}]}
    (issue,) = parse_matches(payload, text)
    assert text[issue.offset : issue.end] == "has"


def test_parse_matches_keeps_out_of_range_offsets_out_of_range():
    (issue,) = parse_matches({"matches": [{"offset": 3, "length": 10, "message": "m"}]}, "abcd")
    assert issue.end > 4


def test_parse_matches_rejects_non_object_payload():
    with pytest.raises(AnalyzerError):
        parse_matches(["not", "a", "dict"], "text")
    assert parse_matches({}, "text") == []


def test_mock_client_counts_calls_and_skips_blank_text():
    client = MockAnalyzerClient(matches=[{"offset": 0, "length": 1, "message": "m"}])
    assert client.check("  ", "en-US") == []
    assert client.calls == 0
    assert len(client.check("abc", "en-US")) == 1
    assert client.calls == 1


def test_build_analyzer_client_supports_expected_providers():
    assert isinstance(build_analyzer_client("mock"), MockAnalyzerClient)
    lt = build_analyzer_client(" LanguageTool ", base_url="http://localhost:8081", level="default")
    assert isinstance(lt, LanguageToolClient)
    assert lt.base_url == "http://localhost:8081"
    assert lt.level == "default"
    with pytest.raises(ValueError):
        build_analyzer_client("grammarly")
