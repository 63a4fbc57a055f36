"""Tool argument validation against the tool's input schema."""

from typing import Any

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import SchemaError


def validate_arguments(arguments: Any, schema: Any) -> list[str]:
    """Check arguments against a JSON Schema.

    Args:
        arguments: Candidate ``tools/call`` arguments
        schema: The tool's input schema

    Returns:
        Human-readable issues; empty when the arguments are valid
    """
    if not isinstance(arguments, dict):
        return ["Arguments must be an object"]
    if not isinstance(schema, dict) or not schema:
        return []

    validator_cls = validators.validator_for(schema, default=Draft202012Validator)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as e:
        return [f"Tool schema is invalid: {e.message}"]

    validator = validator_cls(schema)
    issues = []
    errors = sorted(
        validator.iter_errors(arguments),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    for error in errors:
        location = "/".join(str(part) for part in error.absolute_path)
        issues.append(f"{location}: {error.message}" if location else error.message)
    return issues
