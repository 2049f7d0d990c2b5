"""로깅 설정."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any

import yaml

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logging(config_path: Path | None = None, level: int = logging.INFO) -> None:
    """로깅 초기화. config_path YAML 로딩 실패 시 기본 설정 적용."""
    fallback_reason: str | None = None
    if config_path is not None:
        try:
            with open(config_path, encoding="utf-8") as f:
                config: dict[str, Any] = yaml.safe_load(f)
            logging.config.dictConfig(config)
            return
        except (OSError, yaml.YAMLError, ValueError, TypeError) as exc:
            fallback_reason = str(exc)

    logging.basicConfig(level=level, format=DEFAULT_FORMAT)
    logging.getLogger().setLevel(level)
    if fallback_reason is not None:
        logging.getLogger(__name__).warning(
            "logging config %s not applied, using defaults: %s", config_path, fallback_reason
        )


def get_logger(name: str) -> logging.Logger:
    """표준 로거 반환."""
    return logging.getLogger(name)
