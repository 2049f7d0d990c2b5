"""parse 커맨드 핸들러: 파싱된 스키마 객체를 출력한다."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

from ddl_linter.parser import render_all
from ddl_linter.pipeline import run_parse


def configure(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("parse", help="DDL을 구조화된 형태로 출력한다")
    parser.add_argument("paths", nargs="+", help="DDL 파일/디렉터리")
    parser.add_argument("--format", choices=["json", "ddl"], default="json")
    parser.add_argument("--out", required=False)
    parser.add_argument("--jobs", type=int, default=1)
    parser.set_defaults(handler=execute)


def execute(args: argparse.Namespace) -> int:
    parse_result, _ = run_parse([Path(item) for item in args.paths], jobs=max(1, args.jobs))

    if args.format == "ddl":
        content = render_all(parse_result.objects)
    else:
        payload = {
            "objects": [obj.to_dict() for obj in parse_result.objects],
            "issues": [
                {
                    "source": issue.source,
                    "statement": issue.statement_index,
                    "offset": issue.offset,
                    "object": issue.object_name,
                    "message": issue.message,
                }
                for issue in parse_result.issues
            ],
        }
        content = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(content, encoding="utf-8")
        print(f"[OK] objects={len(parse_result.objects)} output={out_path}")
    else:
        sys.stdout.write(content)

    if parse_result.issues:
        print(f"[WARN] parse issues={len(parse_result.issues)}", file=sys.stderr)
    return 0
