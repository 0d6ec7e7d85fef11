"""JSON schemas for snapsync documents."""

from snapsync.config.schemas.validator import (
    CacheValidator,
    SchemaValidationError,
)

__all__ = ["CacheValidator", "SchemaValidationError"]
