"""Entry point for DDL Linter CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ddl_linter.cli import build_parser
from ddl_linter.common import UserInputError
from ddl_linter.observability import setup_logging

logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    setup_logging(
        Path(args.log_config) if args.log_config else None,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return int(handler(args))
    except UserInputError as exc:
        logger.error("%s", exc)
        return 2
    except OSError as exc:
        logger.error("filesystem error: %s", exc)
        return 2
    except Exception as exc:  # pragma: no cover
        logger.error("check failed unexpectedly: %s", exc)
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
