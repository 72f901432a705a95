"""
Argument validation for tool adapters.

Tool arguments are checked against the JSON schema each adapter declares
in its ToolDefinition before the adapter is invoked. Errors are reported
with the offending field first, e.g. ``query is required`` or
``limit: 500 is greater than the maximum of 100``.
"""

from typing import Any, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, ValidationError
from jsonschema.protocols import Validator
from jsonschema.validators import validator_for

from ..constants import ErrorCode, Suggestion
from ..models.tool import ExecutionResult, ValidationResult


def _field_path(error: ValidationError) -> str:
    return ".".join(str(part) for part in error.absolute_path)


def _describe(error: ValidationError) -> str:
    """Render a jsonschema error as ``<field> <reason>``."""
    path = _field_path(error)

    if error.validator == "required" and isinstance(error.instance, dict):
        missing = [name for name in error.validator_value if name not in error.instance]
        if missing:
            field = f"{path}.{missing[0]}" if path else missing[0]
            return f"{field} is required"

    if error.validator == "additionalProperties" and isinstance(error.instance, dict):
        allowed = set(error.schema.get("properties", {}))
        extra = sorted(name for name in error.instance if name not in allowed)
        if extra:
            return f"{extra[0]} is not an allowed argument"

    return f"{path}: {error.message}" if path else error.message


def compile_schema(schema: dict[str, Any]) -> Optional[Validator]:
    """
    Build a reusable validator for a tool input schema.

    The schema is checked against its meta-schema once, here, so a broken
    schema is caught when the tool is registered rather than on every call.

    Returns:
        A validator, or None for an empty schema (accepts anything).

    Raises:
        jsonschema.exceptions.SchemaError: If the schema itself is invalid.
    """
    if not schema:
        return None

    validator_class = validator_for(schema, default=Draft202012Validator)
    validator_class.check_schema(schema)
    return validator_class(schema)


def check_arguments(validator: Optional[Validator], args: Any) -> ValidationResult:
    """
    Validate tool arguments with a validator from compile_schema().

    Checks required fields, types, enums and numeric/length bounds as
    declared in the schema.

    Returns:
        ValidationResult; ``error`` holds the first problem found and
        ``details`` lists every problem as {path, message}.
    """
    if validator is None:
        return ValidationResult(valid=True)

    errors = sorted(
        validator.iter_errors(args),
        key=lambda e: [str(part) for part in e.absolute_path],
    )
    if not errors:
        return ValidationResult(valid=True)

    return ValidationResult(
        valid=False,
        error=_describe(errors[0]),
        details=[{"path": _field_path(e), "message": _describe(e)} for e in errors],
    )


def validate_arguments(schema: dict[str, Any], args: Any) -> ValidationResult:
    """One-off validation against a schema that has not been compiled."""
    try:
        validator = compile_schema(schema)
    except SchemaError as exc:
        return ValidationResult(valid=False, error=f"Invalid tool schema: {exc.message}")
    return check_arguments(validator, args)


def validation_failure(validation: ValidationResult) -> ExecutionResult:
    """Turn a failed ValidationResult into an INVALID_PARAMS result."""
    return ExecutionResult.fail(
        ErrorCode.INVALID_PARAMS,
        validation.error or "Invalid arguments",
        details=validation.details,
        suggestion=Suggestion.CHECK_SCHEMA,
        recoverable=True,
    )
