from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol

from .errors import AnalyzerError
from .models import Category, Issue, MatchContext, Rule

logger = logging.getLogger("grammarfix.analyzer")

DEFAULT_BASE_URL = "https://api.languagetool.org"


class AnalyzerClient(Protocol):
    def check(self, text: str, language: str) -> list[Issue]: ...


def _utf16_index_map(text: str) -> list[int]:
    """Map UTF-16 code unit offsets to str indices.

    LanguageTool counts offsets in UTF-16 units, so characters outside the
    BMP take two units there and one index in a Python string.
    """
    index_map: list[int] = []
    for idx, ch in enumerate(text):
        index_map.append(idx)
        if ord(ch) > 0xFFFF:
            index_map.append(idx)
    index_map.append(len(text))
    return index_map


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_rule(raw: Any) -> Rule:
    if not isinstance(raw, dict):
        return Rule()
    category_raw = raw.get("category")
    category = None
    if isinstance(category_raw, dict):
        category = Category(id=str(category_raw.get("id") or ""), name=str(category_raw.get("name") or ""))
    issue_type = raw.get("issueType")
    return Rule(
        id=str(raw.get("id") or ""),
        description=str(raw.get("description") or ""),
        issue_type=str(issue_type) if issue_type else None,
        category=category,
    )


def _parse_context(raw: Any) -> MatchContext | None:
    if not isinstance(raw, dict):
        return None
    return MatchContext(
        text=str(raw.get("text") or ""),
        offset=_as_int(raw.get("offset")),
        length=_as_int(raw.get("length")),
    )


def parse_matches(payload: Any, text: str) -> list[Issue]:
    """Turn a ``/v2/check`` JSON payload into issues anchored to ``text``.

    Offsets are left unclamped; range violations are caught by the patch engine.
    """
    if not isinstance(payload, dict):
        raise AnalyzerError(f"Unexpected analyzer response schema: {payload!r}")
    raw_matches = payload.get("matches")
    if raw_matches is None:
        return []
    if not isinstance(raw_matches, list):
        raise AnalyzerError(f"Unexpected analyzer response schema: matches={raw_matches!r}")

    index_map = _utf16_index_map(text)

    def _to_index(units: int) -> int:
        if 0 <= units < len(index_map):
            return index_map[units]
        # Out of range: keep it out of range for the bounds check.
        return units - (len(index_map) - 1 - len(text))

    issues: list[Issue] = []
    for raw in raw_matches:
        if not isinstance(raw, dict):
            continue
        start_units = _as_int(raw.get("offset"), -1)
        length_units = _as_int(raw.get("length"))
        start = _to_index(start_units) if start_units >= 0 else start_units
        end = _to_index(start_units + length_units) if start_units >= 0 else start_units + length_units
        replacements = tuple(
            r["value"]
            for r in (raw.get("replacements") or [])
            if isinstance(r, dict) and isinstance(r.get("value"), str)
        )
        issues.append(
            Issue(
                offset=start,
                length=end - start,
                message=str(raw.get("message") or ""),
                short_message=str(raw.get("shortMessage") or ""),
                sentence=str(raw.get("sentence") or ""),
                rule=_parse_rule(raw.get("rule")),
                replacements=replacements,
                context=_parse_context(raw.get("context")),
            )
        )
    return issues


@dataclass(frozen=True)
class LanguageToolClient:
    """Client for the LanguageTool ``/v2/check`` HTTP endpoint."""

    base_url: str = DEFAULT_BASE_URL
    level: str = "picky"
    timeout_s: float = 30.0
    user_agent: str = "grammarfix/0.1"

    def check(self, text: str, language: str) -> list[Issue]:
        if not text or not text.strip():
            return []

        body = urllib.parse.urlencode(
            {
                "text": text,
                "language": language,
                "enabledOnly": "false",
                "level": self.level,
            }
        ).encode("utf-8")
        req = urllib.request.Request(
            url=f"{self.base_url.rstrip('/')}/v2/check",
            data=body,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
                "User-Agent": self.user_agent,
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            err_body = e.read().decode("utf-8", errors="replace") if hasattr(e, "read") else ""
            raise AnalyzerError(
                err_body or f"LanguageTool request failed with status {e.code}",
                status=e.code,
                body=err_body,
            ) from e
        except Exception as e:
            raise AnalyzerError(f"LanguageTool request failed: {e}") from e

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise AnalyzerError(f"LanguageTool returned invalid JSON: {raw[:200]}", body=raw) from e
        issues = parse_matches(data, text)
        logger.debug("LanguageTool returned %d matches for %d chars (%s)", len(issues), len(text), language)
        return issues


@dataclass
class MockAnalyzerClient:
    """Deterministic analyzer for tests and offline runs.

    ``matches`` are raw LanguageTool match dicts, returned for every call.
    """

    matches: list[dict[str, Any]] | None = None
    calls: int = 0

    def check(self, text: str, language: str) -> list[Issue]:
        if not text or not text.strip():
            return []
        self.calls += 1
        return parse_matches({"matches": list(self.matches or [])}, text)


def build_analyzer_client(
    provider: str,
    *,
    base_url: str | None = None,
    level: str = "picky",
    timeout_s: float = 30.0,
    user_agent: str = "grammarfix/0.1",
) -> AnalyzerClient:
    provider_norm = provider.strip().lower()
    if provider_norm == "mock":
        return MockAnalyzerClient()
    if provider_norm == "languagetool":
        return LanguageToolClient(
            base_url=base_url or DEFAULT_BASE_URL,
            level=level,
            timeout_s=timeout_s,
            user_agent=user_agent,
        )
    raise ValueError(f"Unknown analyzer provider: {provider}")
