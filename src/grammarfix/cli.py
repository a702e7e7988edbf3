from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml
from rich.console import Console

from .analyzer import build_analyzer_client
from .config import load_config
from .controller import ReconciliationController
from .errors import GrammarFixError
from .logging_utils import setup_logging
from .report import count_by_type, issue_to_dict, render_issues, text_stats

logger = logging.getLogger("grammarfix.cli")


def _parse_apply_target(raw: str) -> tuple[int, int]:
    """Parse ``N`` or ``N:K`` (1-based issue and candidate numbers)."""
    head, _, tail = raw.partition(":")
    try:
        issue_no = int(head)
        choice_no = int(tail) if tail else 1
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected N or N:K, got {raw!r}") from e
    if issue_no < 1 or choice_no < 1:
        raise argparse.ArgumentTypeError(f"Issue and candidate numbers start at 1, got {raw!r}")
    return issue_no, choice_no


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="grammarfix", description="Grammar and spelling checker (LanguageTool).")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("check", help="Check text and optionally apply suggestions.")
    c.add_argument("--input", "-i", default="-", help="Path to a UTF-8 text file ('-' reads stdin).")
    c.add_argument("--config", "-c", default=None, help="Path to YAML config.")
    c.add_argument("--language", "-l", default=None, help="Override analyzer language (e.g. en-GB, de-DE).")
    apply_group = c.add_mutually_exclusive_group()
    apply_group.add_argument(
        "--apply-all",
        action="store_true",
        help="Apply the first suggestion of every issue.",
    )
    apply_group.add_argument(
        "--apply",
        type=_parse_apply_target,
        default=None,
        metavar="N[:K]",
        help="Apply candidate K (default 1) of issue N.",
    )
    c.add_argument("--output", "-o", default=None, help="Write corrected text here instead of stdout.")
    c.add_argument("--json", action="store_true", help="Print issues as JSON.")
    c.add_argument("--log", default=None, help="Override log path.")
    c.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    return p


def _read_input(raw: str) -> str:
    if raw == "-":
        return sys.stdin.read()
    return Path(raw).read_text(encoding="utf-8")


def _run_check(args: argparse.Namespace) -> int:
    try:
        cfg = load_config(args.config)
        text = _read_input(args.input)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"grammarfix: {e}", file=sys.stderr)
        return 2
    applying = bool(args.apply_all or args.apply is not None)
    log_path = args.log if args.log is not None else cfg.log_path
    setup_logging(Path(log_path) if log_path else None, level=logging.DEBUG if args.verbose else logging.INFO)

    analyzer = build_analyzer_client(
        cfg.analyzer.provider,
        base_url=cfg.analyzer.base_url,
        level=cfg.analyzer.level,
        timeout_s=cfg.analyzer.timeout_s,
        user_agent=cfg.analyzer.user_agent,
    )
    controller = ReconciliationController.from_config(cfg, analyzer=analyzer, text=text)
    if args.language:
        controller.language = str(args.language)

    # Corrected text goes to stdout when applying without --output.
    console = Console(stderr=applying and args.output is None)

    try:
        issue_set = controller.request_analysis()
    except GrammarFixError as e:
        print(f"Check failed: {e}", file=sys.stderr)
        return 1
    issues = issue_set.issues if issue_set is not None else ()

    if args.json:
        chars, words = text_stats(controller.text)
        payload = {
            "language": controller.language,
            "characters": chars,
            "words": words,
            "counts": count_by_type(issues),
            "issues": [issue_to_dict(issue, idx) for idx, issue in enumerate(issues, start=1)],
        }
        console.print(
            json.dumps(payload, ensure_ascii=False, indent=2),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
    else:
        render_issues(console, issues, controller.text)

    if not applying:
        return 0

    try:
        if args.apply_all:
            patched = controller.apply_all()
        else:
            issue_no, choice_no = args.apply
            if issue_no > len(issues):
                print(f"No issue #{issue_no}; found {len(issues)}", file=sys.stderr)
                return 2
            issue = issues[issue_no - 1]
            if choice_no > len(issue.replacements):
                print(f"Issue #{issue_no} has {len(issue.replacements)} candidates", file=sys.stderr)
                return 2
            patched = controller.apply_single(issue, issue.replacements[choice_no - 1])
    except GrammarFixError as e:
        print(f"Apply failed: {e}", file=sys.stderr)
        return 1

    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(patched, encoding="utf-8")
        logger.info("Corrected text written: %s", out_path)
    else:
        sys.stdout.write(patched)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.cmd == "check":
        return _run_check(args)

    print(f"Unknown command: {args.cmd}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
