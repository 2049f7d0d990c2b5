"""Rule engine module."""

from .service import evaluate

__all__ = ["evaluate"]
