"""
Schema validation for persisted tracker data.

Enforces JSON Schema validation at the feature-list boundary, on load and
before every write. Fails hard with the JSON path of the first problem.
"""

import json
from pathlib import Path

import jsonschema

from .errors import ParseError


# Cache loaded schemas
_schema_cache: dict[str, dict] = {}


def _get_schemas_dir() -> Path:
    """Schemas ship inside the package (tracker/schemas)."""
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    if schema_name not in _schema_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ParseError(schema_path, f"[{schema_name}] Schema file not found")
        _schema_cache[schema_name] = json.loads(schema_path.read_text(encoding="utf-8"))
    return _schema_cache[schema_name]


def _check(instance, schema: dict, label: str, source) -> None:
    try:
        jsonschema.validate(instance=instance, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise ParseError(source, f"[{label}] {e.message} at {path}") from None


def validate(data: dict, schema_name: str, source: Path | str | None = None) -> None:
    """
    Validate data against named schema.

    Args:
        data: Parsed JSON document
        schema_name: Schema name (e.g., "feature_list")
        source: File the data came from, for error context

    Raises:
        ParseError: If validation fails
    """
    _check(data, _load_schema(schema_name), schema_name, source)


def validate_definition(data: dict, schema_name: str, definition: str) -> None:
    """
    Validate one fragment (e.g. a single feature) against a schema definition.

    Raises:
        ParseError: If validation fails
    """
    schema = _load_schema(schema_name)
    definitions = schema["definitions"]
    sub_schema = dict(definitions[definition], definitions=definitions)
    sub_schema["$schema"] = schema["$schema"]
    _check(data, sub_schema, f"{schema_name}#{definition}", None)


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """
    Validate data before writing to file. Ensures we never write invalid data.

    Raises:
        ParseError: If data doesn't match schema
    """
    try:
        validate(data, schema_name)
    except ParseError as e:
        raise ParseError(filepath, f"Refusing to write invalid data: {e.message}") from None
