"""Custom exceptions for configuration management."""

from typing import List, Optional

from pydantic import ValidationError

_TYPE_ERRORS = ("string_type", "int_type", "bool_type", "float_type")


class ConfigurationError(Exception):
    """
    Exception raised when configuration or environment validation fails.

    Every problem found in one pass is listed, followed by suggestions, so
    an operator can fix a config file in one go.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    @classmethod
    def from_validation_error(
        cls,
        error: ValidationError,
        message: str = "Configuration validation failed",
        suggestions: Optional[List[str]] = None,
    ) -> "ConfigurationError":
        """Build one error entry per pydantic error, keyed by its field path.

        Example:
            ``email -> max_retries: Input should be less than or equal to 10``
        """
        errors = []
        for detail in error.errors():
            field_path = " -> ".join(str(loc) for loc in detail["loc"])
            if detail["type"] == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif detail["type"] in _TYPE_ERRORS:
                expected = detail["type"].replace("_type", "")
                errors.append(
                    f"Invalid type for '{field_path}': expected {expected}, "
                    f"got {detail.get('input')!r}"
                )
            else:
                errors.append(f"{field_path}: {detail['msg']}")
        return cls(message, errors=errors, suggestions=suggestions)

    def _format_message(self) -> str:
        lines = [self.message]
        if self.errors:
            lines.append("\nValidation Errors:")
            lines.extend(f"  {i}. {error}" for i, error in enumerate(self.errors, 1))
        if self.suggestions:
            lines.append("\nSuggestions:")
            lines.extend(f"  - {suggestion}" for suggestion in self.suggestions)
        return "\n".join(lines)
