"""JSON Schema definition for jobplan job files.

A job file describes one agent's plan together with the job that runs
against it: the job uid, the tasks to enqueue and their parameters.

Schema Versioning:
------------------
Each supported version has its own JSON Schema. The ``version`` field is
checked first and selects the schema used for validation.

Supported Versions:
- "1.0": Initial schema version
"""

import copy

SUPPORTED_VERSIONS = ["1.0"]

# Default values for optional job file fields
DEFAULT_CONFIG = {
    "version": "1.0",
    "scraper": None,
    "params": {},
    "tasks": [],
}

_TASK_ID = {
    "type": "string",
    "minLength": 1,
    "description": "Identifier of a task known to the agent",
}

_TASK_ENTRY = {
    "oneOf": [
        _TASK_ID,
        {
            "type": "object",
            "required": ["task_id"],
            "properties": {
                "task_id": _TASK_ID,
            },
            "additionalProperties": True,
            "description": "Task with extra options passed through to its descriptor",
        },
    ]
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "jobplan job file",
    "type": "object",
    "required": ["version", "uid", "agent"],
    "properties": {
        "version": {
            "type": "string",
            "enum": SUPPORTED_VERSIONS,
        },
        "uid": {
            "type": "string",
            "minLength": 1,
            "description": "Unique identifier of the job run",
        },
        "scraper": {
            "type": ["string", "null"],
            "description": "Name of the scraper the job is attached to",
        },
        "agent": {
            "type": "object",
            "required": ["plan"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "plan": {
                    "type": "array",
                    "description": "Ordered execution groups",
                    "items": {
                        "oneOf": [
                            _TASK_ENTRY["oneOf"][0],
                            _TASK_ENTRY["oneOf"][1],
                            {
                                "type": "array",
                                "minItems": 1,
                                "items": _TASK_ENTRY,
                            },
                        ]
                    },
                },
            },
            "additionalProperties": False,
        },
        "params": {
            "type": "object",
            "description": "Parameters handed to every task",
        },
        "tasks": {
            "type": "array",
            "items": _TASK_ID,
            "description": "Task ids to enqueue, in order",
        },
    },
    "additionalProperties": False,
}

SCHEMAS_BY_VERSION = {
    "1.0": CONFIG_SCHEMA,
}


def get_schema_for_version(version: str) -> dict:
    """Return a copy of the schema for a job file version.

    Raises:
        ValueError: If the version is not supported.
    """
    if version not in SCHEMAS_BY_VERSION:
        raise ValueError(
            f"Unsupported job file version '{version}'. Supported versions: {SUPPORTED_VERSIONS}"
        )
    return copy.deepcopy(SCHEMAS_BY_VERSION[version])
