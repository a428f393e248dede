# contentcore/services/structured_data.py
# Validación JSON-LD (structured_data) con jsonschema
from __future__ import annotations

from typing import Any, Optional

from jsonschema import Draft202012Validator

from contentcore.core.errors import ContentValidationError

JSON_LD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["@context", "@type"],
    "properties": {
        "@context": {
            "anyOf": [
                {"type": "string", "minLength": 1},
                {"type": "object"},
                {"type": "array", "minItems": 1},
            ]
        },
        "@type": {
            "anyOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "items": {"type": "string", "minLength": 1}, "minItems": 1},
            ]
        },
    },
}

_validator = Draft202012Validator(JSON_LD_SCHEMA)


def validate_structured_data(data: Optional[dict]) -> Optional[dict]:
    if data is None:
        return None
    errors = sorted(_validator.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        raise ContentValidationError(
            "Structured data is not valid JSON-LD",
            code="STRUCTURED_DATA_INVALID",
            errors=[{"path": "/".join(str(p) for p in e.path), "message": e.message} for e in errors],
        )
    return data
