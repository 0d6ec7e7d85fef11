"""JSON Schema validation for snapsync's JSON documents.

Only the checksum cache is stored as JSON; settings.conf is INI and is
validated key by key in ConfigManager.
"""

from pathlib import Path
from typing import Any

import orjson
from jsonschema import Draft7Validator, ValidationError
from jsonschema.exceptions import best_match

SCHEMA_DIR = Path(__file__).parent
CACHE_ENTRY_SCHEMA_PATH = SCHEMA_DIR / "checksum_cache_entry.schema.json"


class SchemaValidationError(Exception):
    """Raised when JSON schema validation fails."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        schema_type: str | None = None,
    ) -> None:
        """Initialize schema validation error.

        Args:
            message: Error message
            path: JSON path where error occurred
            schema_type: Type of schema being validated

        """
        self.path = path
        self.schema_type = schema_type
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with path information."""
        parts = []
        if self.schema_type:
            parts.append(f"[{self.schema_type}]")
        if self.path:
            parts.append(f"at '{self.path}'")
        if parts:
            return f"{' '.join(parts)}: {super().__str__()}"
        return super().__str__()


class CacheValidator:
    """Validates checksum cache records against their JSON schema."""

    def __init__(self) -> None:
        """Initialize validator with the loaded entry schema."""
        self._entry_validator = Draft7Validator(
            self._load_schema(CACHE_ENTRY_SCHEMA_PATH)
        )

    @staticmethod
    def _load_schema(schema_path: Path) -> dict[str, Any]:
        """Load JSON schema from file.

        Raises:
            FileNotFoundError: If schema file doesn't exist
            ValueError: If schema JSON is invalid

        """
        if not schema_path.exists():
            msg = f"Schema file not found: {schema_path}"
            raise FileNotFoundError(msg)

        try:
            return orjson.loads(schema_path.read_bytes())  # type: ignore[no-any-return]
        except orjson.JSONDecodeError as e:
            msg = f"Invalid JSON in schema file {schema_path}: {e}"
            raise ValueError(msg) from e

    @staticmethod
    def _format_validation_error(error: ValidationError) -> str:
        """Format validation error into a one-line message."""
        path = (
            ".".join(str(p) for p in error.absolute_path)
            if error.absolute_path
            else "root"
        )
        message = error.message
        if error.validator == "type":
            actual = type(error.instance).__name__
            expected = error.validator_value
            message = f"Expected type '{expected}', got '{actual}'"
        return f"{message} (at '{path}')"

    def validate_entry(
        self,
        entry: Any,  # noqa: ANN401
        filename: str | None = None,
    ) -> None:
        """Validate one cache record.

        Args:
            entry: Decoded JSON value stored under a filename
            filename: Cache key, for error messages

        Raises:
            SchemaValidationError: If the record does not match the schema

        """
        error = best_match(self._entry_validator.iter_errors(entry))
        if error is None:
            return
        raise SchemaValidationError(
            self._format_validation_error(error),
            path=filename,
            schema_type="checksum_cache",
        )
