"""Job file loader for jobplan.

This module loads YAML job files and fills in defaults for optional fields.
"""

import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

from jobplan.config.schema import DEFAULT_CONFIG


logger = logging.getLogger(__name__)


class ConfigParseError(Exception):
    """Exception raised when a job file cannot be parsed.

    Attributes:
        message: Human-readable error message
        file_path: Path to the job file that caused the error
    """

    def __init__(self, message: str, file_path: Optional[str] = None):
        self.message = message
        self.file_path = file_path
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with file path if available."""
        if self.file_path:
            return f"{self.message} (file: {self.file_path})"
        return self.message


def load_config(file_path: str) -> Dict[str, Any]:
    """Load and parse a YAML job file.

    Args:
        file_path: Path to the YAML job file.

    Returns:
        The parsed job file with defaults applied.

    Raises:
        ConfigParseError: If the file cannot be read, is empty, is not a
            mapping, or contains invalid YAML.
        FileNotFoundError: If the specified file does not exist.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Job file not found: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except PermissionError:
        raise
    except IOError as e:
        raise ConfigParseError(f"Error reading file: {str(e)}", file_path)

    # Whitespace-only files count as empty
    if not content.strip():
        raise ConfigParseError("Job file is empty", file_path)

    try:
        config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Invalid YAML syntax: {str(e)}", file_path)

    # A file with only comments parses to None
    if config is None:
        raise ConfigParseError("Job file is empty", file_path)

    if not isinstance(config, dict):
        raise ConfigParseError(
            f"Job file must contain a mapping at the top level, got {type(config).__name__}",
            file_path,
        )

    logger.debug(f"Loaded job file {file_path}")
    return apply_defaults(config)


def apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of config with defaults filled in for missing fields."""
    resolved = copy.deepcopy(config)

    for key, value in DEFAULT_CONFIG.items():
        if key not in resolved:
            resolved[key] = copy.deepcopy(value)

    return resolved


def apply_overrides(
    config: Dict[str, Any],
    extra_tasks: Optional[list] = None,
    param_overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Apply command line additions to a loaded job file.

    Args:
        config: A job file that has already had defaults applied.
        extra_tasks: Task ids appended after the file's own tasks.
        param_overrides: Parameters merged over the file's params.

    Returns:
        A new dict; the original is not mutated.
    """
    result = copy.deepcopy(config)
    if extra_tasks:
        result["tasks"] = list(result.get("tasks") or []) + list(extra_tasks)
    if param_overrides:
        params = dict(result.get("params") or {})
        params.update(param_overrides)
        result["params"] = params
    return result
