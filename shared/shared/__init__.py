"""Shared service utilities: logging, settings, middleware and health probes."""

from shared.logging import setup_logging
from shared.config import BaseServiceSettings

__all__ = ["setup_logging", "BaseServiceSettings"]
