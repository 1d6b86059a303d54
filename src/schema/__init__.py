"""Schema Package - JSON Schema Loading.

This package loads the JSON schemas used by spike-mastodon once at import
time and exposes them as module-level constants.

Available Schemas:
    CREDENTIALS_SCHEMA: JSON Schema for the credentials.toml record
        (instance base URL, OAuth client id/secret, redirect URI, token).
        Based on JSON Schema Draft 7 specification.

Usage:
    from jsonschema import validate
    from schema import CREDENTIALS_SCHEMA
    validate(instance=payload, schema=CREDENTIALS_SCHEMA)

Error Handling:
    If a schema file is missing, is not JSON, or is not a valid schema,
    the import fails.
"""
from .schema import CREDENTIALS_SCHEMA

__all__ = ["CREDENTIALS_SCHEMA"]
