from __future__ import annotations

from .config import Settings, settings
from .core.session import SaleSession
from .logging_config import setup_logging

__all__ = ["SaleSession", "Settings", "settings", "setup_logging"]
