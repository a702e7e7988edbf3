from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .analyzer import DEFAULT_BASE_URL
from .patch import OVERLAP_POLICIES
from .snapshot import FRESHNESS_POLICIES


@dataclass(frozen=True)
class AnalyzerConfig:
    provider: str = "languagetool"  # 'languagetool' | 'mock'
    base_url: str = DEFAULT_BASE_URL
    language: str = "en-US"
    level: str = "picky"  # 'default' | 'picky'
    timeout_s: float = 30.0
    user_agent: str = "grammarfix/0.1"


@dataclass(frozen=True)
class ReconcileConfig:
    # 'exact': any difference, including whitespace, invalidates the issues.
    freshness: str = "exact"  # 'exact' | 'trailing_whitespace'
    on_overlap: str = "error"  # 'error' | 'drop'


@dataclass(frozen=True)
class AppConfig:
    analyzer: AnalyzerConfig = AnalyzerConfig()
    reconcile: ReconcileConfig = ReconcileConfig()
    log_path: str | None = None


def _resolve_optional_path(base_dir: Path, value: Any) -> str | None:
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _normalize_choice(value: Any, *, field_name: str, allowed: set[str], default: str) -> str:
    raw = str(default if value is None else value).strip().lower()
    if raw not in allowed:
        allowed_list = ", ".join(sorted(allowed))
        raise ValueError(f"Invalid value for {field_name}: {raw!r}. Allowed: {allowed_list}")
    return raw


def load_config(path: str | Path | None) -> AppConfig:
    if path is None:
        return AppConfig()
    cfg_path = Path(path)
    data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {cfg_path}")

    analyzer_data = data.get("analyzer", {}) or {}
    reconcile_data = data.get("reconcile", {}) or {}

    analyzer = AnalyzerConfig(
        provider=_normalize_choice(
            analyzer_data.get("provider"),
            field_name="analyzer.provider",
            allowed={"languagetool", "mock"},
            default="languagetool",
        ),
        base_url=str(analyzer_data.get("base_url") or DEFAULT_BASE_URL),
        language=str(analyzer_data.get("language", "en-US")).strip() or "en-US",
        level=_normalize_choice(
            analyzer_data.get("level"),
            field_name="analyzer.level",
            allowed={"default", "picky"},
            default="picky",
        ),
        timeout_s=float(analyzer_data.get("timeout_s", 30.0)),
        user_agent=str(analyzer_data.get("user_agent", "grammarfix/0.1")),
    )
    reconcile = ReconcileConfig(
        freshness=_normalize_choice(
            reconcile_data.get("freshness"),
            field_name="reconcile.freshness",
            allowed=FRESHNESS_POLICIES,
            default="exact",
        ),
        on_overlap=_normalize_choice(
            reconcile_data.get("on_overlap"),
            field_name="reconcile.on_overlap",
            allowed=OVERLAP_POLICIES,
            default="error",
        ),
    )

    return AppConfig(
        analyzer=analyzer,
        reconcile=reconcile,
        log_path=_resolve_optional_path(cfg_path.parent, data.get("log_path")),
    )
