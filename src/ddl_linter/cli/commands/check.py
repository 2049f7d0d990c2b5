"""check 커맨드 핸들러."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from ddl_linter.common import Severity
from ddl_linter.pipeline import check_text, run_check
from ddl_linter.reporter import RENDERERS, render_report, write_report

STDIN_MARKER = "-"


def configure(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("check", help="DDL을 규칙 세트로 검사한다")
    parser.add_argument("paths", nargs="+", help="DDL 파일/디렉터리, '-'는 표준입력")
    parser.add_argument("--config", required=False, help="규칙 설정 YAML 경로")
    parser.add_argument("--format", choices=sorted(RENDERERS), default="text")
    parser.add_argument("--out", required=False, help="리포트 파일 경로 (없으면 stdout)")
    parser.add_argument("--jobs", type=int, default=1, help="병렬 파싱 워커 수")
    parser.add_argument(
        "--fail-on",
        choices=[severity.value for severity in Severity],
        default=Severity.ERROR.value,
        help="이 심각도 이상의 finding이 있으면 실패",
    )
    parser.set_defaults(handler=execute)


def execute(args: argparse.Namespace) -> int:
    config_path = Path(args.config) if args.config else None

    if args.paths == [STDIN_MARKER]:
        outcome = check_text(sys.stdin.read(), config_path=config_path)
    else:
        outcome = run_check(
            input_paths=[Path(item) for item in args.paths],
            config_path=config_path,
            jobs=max(1, args.jobs),
        )

    report = outcome.report
    if args.out:
        report_path = write_report(report, args.format, Path(args.out))
        print(f"[OK] report={report_path}")
        print(
            "[OK] "
            + ", ".join(f"{severity.value}={report.counts[severity]}" for severity in Severity)
        )
    else:
        sys.stdout.write(render_report(report, args.format))

    if outcome.failed(Severity.parse(args.fail_on)):
        if args.out:
            print(f"[FAIL] findings at or above {args.fail_on}")
        return 1
    return 0
