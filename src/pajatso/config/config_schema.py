"""JSON Schema-based validation for pajatso YAML configuration.

The schema is small and lives in this module as ``CONFIG_SCHEMA`` so an
installed package validates the same way as a source checkout.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator, ValidationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["debug", "info", "warn", "warning", "error", "crit", "critical"]

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "pajatso configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "zone": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "nameserver": {"type": "string", "minLength": 1},
            },
        },
        "tsig": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "secret": {"type": "string", "minLength": 1},
            },
        },
        "listen": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "host": {"type": "string"},
                "port": {"type": "integer", "minimum": 0, "maximum": 65535},
                "udp": {"type": "boolean"},
                "tcp": {"type": "boolean"},
                "tcp_idle_timeout": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "level": {"type": "string", "enum": _LOG_LEVELS},
                "stderr": {"type": "boolean"},
                "file": {"type": ["string", "null"]},
                "syslog": {
                    "oneOf": [
                        {"type": "boolean"},
                        {
                            "type": "object",
                            "additionalProperties": False,
                            "properties": {
                                "address": {
                                    "oneOf": [
                                        {"type": "string"},
                                        {
                                            "type": "array",
                                            "prefixItems": [
                                                {"type": "string"},
                                                {"type": "integer"},
                                            ],
                                            "minItems": 2,
                                            "maxItems": 2,
                                        },
                                    ]
                                },
                                "facility": {"type": "string"},
                            },
                        },
                    ]
                },
            },
        },
    },
}


def _format_errors(errors: List[ValidationError], *, config_path: Optional[str]) -> str:
    """Brief: Format jsonschema validation errors into a human-readable string.

    Inputs:
      - errors: List of jsonschema.ValidationError instances.
      - config_path: Optional path to the YAML config being validated.

    Outputs:
      - String suitable for display in logs or CLI output.
    """

    lines: List[str] = [f"Invalid configuration in {config_path or '<config dict>'}:"]
    for err in errors:
        instance_path = "/".join(str(p) for p in err.path) or "<root>"
        schema_path = "/".join(str(p) for p in err.schema_path)
        lines.append(f"- {instance_path}: {err.message} (schema: {schema_path})")
    return "\n".join(lines)


def _split_extra_property_errors(
    errors: List[ValidationError],
) -> tuple[List[ValidationError], List[ValidationError]]:
    """Brief: Partition validation errors into extra-property vs other errors."""

    extra: List[ValidationError] = []
    other: List[ValidationError] = []
    for err in errors:
        if err.validator == "additionalProperties":
            extra.append(err)
        else:
            other.append(err)
    return extra, other


def validate_config(
    cfg: Dict[str, Any],
    *,
    schema: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
    unknown_keys: str = "warn",
) -> None:
    """Brief: Validate a parsed YAML configuration mapping against JSON Schema.

    Inputs:
      - cfg: Dict loaded from YAML (top-level configuration mapping).
      - schema: Optional schema override; defaults to ``CONFIG_SCHEMA``.
      - config_path: Optional string path to the YAML file, used only for
        error messages.
      - unknown_keys: Policy for keys the schema does not describe:

        - "ignore": drop extra-property errors silently.
        - "warn": (default) log them as a warning and continue.
        - "error": treat them as fatal alongside all other errors.

    Outputs:
      - None on success.

    Raises:
      - ValueError: when any other validation fails, or when ``unknown_keys``
        is "error" and extra properties are present. The message lists every
        offending instance path.

    Example:
      >>> validate_config({"zone": {"name": "example.com"}})  # does not raise
    """

    if unknown_keys not in {"ignore", "warn", "error"}:
        raise ValueError(
            f"unknown_keys policy must be 'ignore', 'warn', or 'error', got {unknown_keys!r}"
        )

    validator = Draft202012Validator(schema or CONFIG_SCHEMA)
    all_errors = sorted(validator.iter_errors(cfg), key=lambda e: list(e.path))
    if not all_errors:
        return None

    extra_errors, other_errors = _split_extra_property_errors(all_errors)

    if other_errors:
        raise ValueError(
            _format_errors(other_errors + extra_errors, config_path=config_path)
        )

    message = _format_errors(extra_errors, config_path=config_path)
    if unknown_keys == "ignore":
        return None
    if unknown_keys == "warn":
        logger.warning(message)
        return None
    raise ValueError(message)
