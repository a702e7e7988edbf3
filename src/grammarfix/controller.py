from __future__ import annotations

import logging
from threading import Lock

from .analyzer import AnalyzerClient, build_analyzer_client
from .config import AppConfig
from .errors import AnalyzerError, GrammarFixError, StaleState
from .models import BufferState, Issue, IssueSet, Snapshot
from .patch import apply_many, apply_one, edit_for_issue, edits_for_issues, plan_edits
from .report import count_by_type
from .snapshot import is_fresh

logger = logging.getLogger("grammarfix.controller")

STALE_MESSAGE = "Text changed since last check. Run the check again before applying suggestions."


class ReconciliationController:
    """Owns one text buffer and the issue set computed for it.

    Text and issue set only change together under ``_lock``. The analyzer
    call runs outside the lock so edits are never blocked by a pending check;
    a response that arrives after an edit is discarded.
    """

    def __init__(
        self,
        analyzer: AnalyzerClient,
        *,
        text: str = "",
        language: str = "en-US",
        freshness: str = "exact",
        on_overlap: str = "error",
    ) -> None:
        self.analyzer = analyzer
        self.language = language
        self.freshness = freshness
        self.on_overlap = on_overlap
        self.last_error: str | None = None
        self._text = text
        self._state = BufferState.UNANALYZED
        self._issue_set: IssueSet | None = None
        self._revision = 0
        self._in_flight = False
        self._lock = Lock()

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        *,
        analyzer: AnalyzerClient | None = None,
        text: str = "",
    ) -> ReconciliationController:
        if analyzer is None:
            analyzer = build_analyzer_client(
                cfg.analyzer.provider,
                base_url=cfg.analyzer.base_url,
                level=cfg.analyzer.level,
                timeout_s=cfg.analyzer.timeout_s,
                user_agent=cfg.analyzer.user_agent,
            )
        return cls(
            analyzer,
            text=text,
            language=cfg.analyzer.language,
            freshness=cfg.reconcile.freshness,
            on_overlap=cfg.reconcile.on_overlap,
        )

    @property
    def text(self) -> str:
        return self._text

    @property
    def state(self) -> BufferState:
        return self._state

    @property
    def issue_set(self) -> IssueSet | None:
        return self._issue_set

    @property
    def issues(self) -> tuple[Issue, ...]:
        issue_set = self._issue_set
        return issue_set.issues if issue_set is not None else ()

    def is_fresh(self) -> bool:
        issue_set = self._issue_set
        if self._state is not BufferState.ANALYZED or issue_set is None:
            return False
        return is_fresh(self._text, issue_set.snapshot.text, policy=self.freshness, issues=issue_set.issues)

    def issue_counts(self) -> dict[str, int]:
        return count_by_type(self.issues)

    def _replace_text(self, text: str) -> None:
        # Caller holds the lock.
        self._text = text
        self._revision += 1
        self._issue_set = None
        self._state = BufferState.UNANALYZED

    def set_text(self, text: str) -> None:
        """User edit. Drops the current issue set unless the freshness policy still accepts it."""
        with self._lock:
            if text == self._text:
                return
            issue_set = self._issue_set
            if (
                self._state is BufferState.ANALYZED
                and issue_set is not None
                and is_fresh(text, issue_set.snapshot.text, policy=self.freshness, issues=issue_set.issues)
            ):
                self._text = text
                self._revision += 1
                return
            self._replace_text(text)

    def clear(self) -> None:
        with self._lock:
            self._replace_text("")
            self.last_error = None

    def request_analysis(self, language: str | None = None) -> IssueSet | None:
        """Analyze the current text.

        Returns the accepted issue set, or None when the text was edited while
        the request was outstanding. Raises ``AnalyzerError`` on failure or when
        another analysis is already running.
        """
        lang = language or self.language
        with self._lock:
            if self._in_flight:
                raise AnalyzerError("An analysis request is already in progress")
            text = self._text
            if not text.strip():
                self._issue_set = IssueSet(snapshot=Snapshot(text), issues=(), language=lang)
                self._state = BufferState.ANALYZED
                self.last_error = None
                return self._issue_set
            revision = self._revision
            prior_state = self._state
            self._in_flight = True
            self._state = BufferState.ANALYZING

        logger.info("Checking %d chars (%s)", len(text), lang)
        issues: list[Issue] | None = None
        try:
            issues = self.analyzer.check(text, lang)
        except Exception as e:
            err = e if isinstance(e, AnalyzerError) else AnalyzerError(f"Analyzer failed: {e}")
            with self._lock:
                self.last_error = str(err)
            logger.warning("Analysis failed: %s", err)
            if err is e:
                raise
            raise err from e
        finally:
            if issues is None:
                with self._lock:
                    self._in_flight = False
                    if self._revision == revision:
                        self._state = prior_state

        with self._lock:
            self._in_flight = False
            if self._revision != revision:
                logger.info("Discarding analysis result: text was edited while the check was running")
                return None
            self._issue_set = IssueSet(snapshot=Snapshot(text), issues=tuple(issues), language=lang)
            self._state = BufferState.ANALYZED
            self.last_error = None
            logger.info("Analysis complete: %d issues", len(issues))
            return self._issue_set

    def _require_fresh(self) -> IssueSet:
        # Caller holds the lock.
        if not self.is_fresh():
            self.last_error = STALE_MESSAGE
            logger.warning("Refusing apply: %s", STALE_MESSAGE)
            raise StaleState(STALE_MESSAGE)
        assert self._issue_set is not None
        return self._issue_set

    def _fail(self, err: GrammarFixError) -> None:
        self.last_error = str(err)
        logger.error("Apply aborted: %s", err)

    def apply_single(self, issue: Issue, replacement: str) -> str:
        with self._lock:
            issue_set = self._require_fresh()
            if issue not in issue_set.issues:
                err = StaleState("Issue does not belong to the current analysis")
                self.last_error = str(err)
                raise err
            try:
                patched = apply_one(self._text, edit_for_issue(issue, replacement))
            except GrammarFixError as e:
                self._fail(e)
                raise
            self._replace_text(patched)
            self.last_error = None
            logger.info("Applied %r at offset %d (rule %s)", replacement, issue.offset, issue.rule_id or "-")
            return patched

    def apply_all(self) -> str:
        """Apply the first candidate of every issue in one pass."""
        with self._lock:
            issue_set = self._require_fresh()
            edits = edits_for_issues(issue_set.issues)
            if not edits:
                return self._text
            try:
                planned, dropped = plan_edits(self._text, edits, on_overlap=self.on_overlap)
                patched = apply_many(self._text, planned)
            except GrammarFixError as e:
                self._fail(e)
                raise
            self._replace_text(patched)
            self.last_error = None
            logger.info("Applied %d suggestions (%d skipped)", len(planned), len(dropped))
            return patched
