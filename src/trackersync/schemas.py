"""JSON Schema for the sync policy document.

The schema is validated after defaults have been merged in, so every section
is present by the time it runs. Unknown top-level keys are tolerated to allow
additive evolution of the document.
"""

from __future__ import annotations

from typing import Any

SCHEMA_KEY = "$schema"
SCHEMA_URL = "http://json-schema.org/draft-07/schema#"

DIRECTIONS = ("github-to-gitlab", "gitlab-to-github", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_NULLABLE_STRING: dict[str, Any] = {"type": ["string", "null"]}


def get_config_schema() -> dict[str, Any]:
    return {
        SCHEMA_KEY: SCHEMA_URL,
        "title": "TrackerSyncConfig",
        "type": "object",
        "required": ["github", "gitlab", "sync", "logging"],
        "properties": {
            "github": {
                "type": "object",
                "properties": {
                    "owner": _NULLABLE_STRING,
                    "repo": _NULLABLE_STRING,
                    "token": _NULLABLE_STRING,
                    "api_url": {"type": "string", "minLength": 1},
                    "web_url": {"type": "string", "minLength": 1},
                },
                "additionalProperties": False,
            },
            "gitlab": {
                "type": "object",
                "properties": {
                    "url": {"type": "string", "minLength": 1},
                    "project": {"type": ["string", "integer", "null"]},
                    "token": _NULLABLE_STRING,
                },
                "additionalProperties": False,
            },
            "sync": {
                "type": "object",
                "required": ["direction", "issues"],
                "properties": {
                    "direction": {"type": "string", "enum": list(DIRECTIONS)},
                    "issues": {
                        "type": "object",
                        "properties": {
                            "enabled": {"type": "boolean"},
                            "sync_comments": {"type": "boolean"},
                        },
                        "additionalProperties": False,
                    },
                },
            },
            "logging": {
                "type": "object",
                "properties": {
                    "json_enabled": {"type": "boolean"},
                    "level": {"type": "string", "enum": list(LOG_LEVELS)},
                },
            },
            "environment": {
                "type": "object",
                "properties": {
                    "load_dotenv": {"type": "boolean"},
                    "dotenv_path": _NULLABLE_STRING,
                },
            },
        },
    }


__all__ = ["get_config_schema", "DIRECTIONS", "LOG_LEVELS"]
