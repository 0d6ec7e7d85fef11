"""CLI command handlers."""

from .base import BaseCommandHandler
from .cache import CacheHandler
from .extract import ExtractHandler
from .recover import RecoverHandler
from .sync import SyncHandler
from .verify import VerifyHandler

__all__ = [
    "BaseCommandHandler",
    "CacheHandler",
    "ExtractHandler",
    "RecoverHandler",
    "SyncHandler",
    "VerifyHandler",
]
