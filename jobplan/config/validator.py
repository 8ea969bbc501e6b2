"""Job file validator for jobplan.

This module validates job file dictionaries against the JSON schema defined
in schema.py.

Error Output Format:
--------------------
The ValidationResult holds a list of errors and a list of warnings, both as
ValidationIssue objects with:
- field_path: Path to the offending field (e.g., "uid", "agent.plan.1")
- message: Human-readable description of the issue
- value: The offending value, or None for missing fields

Example:
    ValidationResult(
        is_valid=False,
        errors=[
            ValidationIssue(field_path="uid", message="'uid' is a required property", value=None)
        ],
        warnings=[
            ValidationIssue(
                field_path="agent.plan.1",
                message="Task id 'fetch' appears more than once in group 1; only the first is used",
                value="fetch",
            )
        ]
    )
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator

from jobplan.config.schema import SUPPORTED_VERSIONS, get_schema_for_version


@dataclass
class ValidationIssue:
    """A single validation error or warning.

    Attributes:
        field_path: The path to the offending field
        message: Human-readable message
        value: The offending value (None for missing fields)
    """
    field_path: str
    message: str
    value: Any = None


@dataclass
class ValidationResult:
    """Result of job file validation."""
    is_valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.is_valid


_REQUIRED_FIELD_RE = re.compile(r"'(\w+)'")


def validate_config(config: Dict[str, Any], config_file: Optional[str] = None) -> ValidationResult:
    """Validate a job file dictionary.

    Args:
        config: The parsed job file.
        config_file: Optional file name, prefixed to warning messages.

    Returns:
        A ValidationResult with every schema error found plus warnings for
        plan groups that repeat a task id.
    """
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []
    file_prefix = f"[{config_file}] " if config_file else ""

    version = config.get("version")
    if not version:
        return ValidationResult(
            is_valid=False,
            errors=[ValidationIssue("version", "'version' is a required property")]
        )

    if version not in SUPPORTED_VERSIONS:
        return ValidationResult(
            is_valid=False,
            errors=[ValidationIssue(
                field_path="version",
                message=f"Unsupported job file version '{version}'. Supported versions: {SUPPORTED_VERSIONS}",
                value=version
            )]
        )

    validator = Draft7Validator(get_schema_for_version(version))

    for error in sorted(validator.iter_errors(config), key=lambda e: [str(p) for p in e.path]):
        field_path = ".".join(str(p) for p in error.path)
        offending_value = error.instance

        if error.validator == 'required':
            # "'uid' is a required property"
            match = _REQUIRED_FIELD_RE.search(error.message)
            if match:
                field_path = f"{field_path}.{match.group(1)}" if field_path else match.group(1)
            offending_value = None

        errors.append(ValidationIssue(
            field_path=field_path or "root",
            message=error.message,
            value=offending_value
        ))

    # Duplicate ids inside one group are legal but only the first can be picked
    agent = config.get("agent")
    plan = agent.get("plan") if isinstance(agent, dict) else None
    if isinstance(plan, list):
        for index, group in enumerate(plan):
            if not isinstance(group, list):
                continue
            seen = set()
            for entry in group:
                task_id = entry.get("task_id") if isinstance(entry, dict) else entry
                if not isinstance(task_id, str):
                    continue
                if task_id in seen:
                    warnings.append(ValidationIssue(
                        field_path=f"agent.plan.{index}",
                        message=(
                            f"{file_prefix}Task id '{task_id}' appears more than once in group "
                            f"{index}; only the first is used"
                        ),
                        value=task_id
                    ))
                seen.add(task_id)

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings
    )
