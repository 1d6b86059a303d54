"""
Centralized JSON Schema Loading Module.

Schemas are JSON files stored next to this module. They are loaded and
checked against their metaschema once at import time, so a missing or
broken schema fails the import instead of failing the first validation.

Error Handling:
    - FileNotFoundError: Schema file doesn't exist at expected path
    - json.JSONDecodeError: Schema file contains invalid JSON syntax
    - jsonschema.SchemaError: Schema is not a valid Draft 7 schema
"""
import json
from pathlib import Path
from typing import Dict, Any

from jsonschema import Draft7Validator

SCHEMA_DIR = Path(__file__).parent


def _load_schema(schema_filename: str) -> Dict[str, Any]:
    """Read a schema file from SCHEMA_DIR and check it is a usable schema.

    Raises:
        FileNotFoundError: If the file is missing
        json.JSONDecodeError: If the file is not JSON
        jsonschema.SchemaError: If the JSON is not a valid Draft 7 schema
    """
    schema_path = SCHEMA_DIR / schema_filename
    try:
        text = schema_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Schema file not found: {schema_path}") from e

    schema = json.loads(text)
    Draft7Validator.check_schema(schema)
    return schema


# JSON Schema (Draft 7) for the persisted credentials record
CREDENTIALS_SCHEMA = _load_schema("credentials_schema.json")
