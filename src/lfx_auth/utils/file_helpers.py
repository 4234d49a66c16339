"""JSON config file helpers.

- require_file_exists: Fail with a hint when the config file is missing
- load_validated_json: Read a JSON object and validate it with a Pydantic model
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

__all__ = [
    "load_validated_json",
    "require_file_exists",
]

_CONFIG_HINT = "Pass --config with a valid path or configure lfx-auth through AUTH0_* environment variables."


def require_file_exists(file_path: Path, file_type: str = "file") -> None:
    """Raise FileNotFoundError if file_path is not an existing file.

    Args:
        file_path: Path to check (``~`` is expanded).
        file_type: Description for the error message (e.g., "configuration").

    Raises:
        FileNotFoundError: If the path does not exist or is a directory.
    """
    path = file_path.expanduser()
    if path.is_file():
        return
    raise FileNotFoundError(f"{file_type.capitalize()} file not found at {path}.\n{_CONFIG_HINT}")


def _format_validation_errors(error: ValidationError) -> str:
    # Field values are left out: config files carry client secrets
    lines = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"]) or "<root>"
        lines.append(f"  - {loc}: {item['msg']}")
    return "\n".join(lines)


def load_validated_json(
    file_path: Path,
    model_class: type[T],
    file_type: str = "file",
    encoding: str = "utf-8",
) -> T:
    """Load a JSON object from file_path and validate it against model_class.

    Returns:
        Validated model instance.

    Raises:
        ValueError: If the file cannot be read, is not a JSON object, or
            fails validation.
    """
    path = file_path.expanduser()
    try:
        data = json.loads(path.read_text(encoding=encoding))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_type} file {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ValueError(f"Could not read {file_type} file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Invalid {file_type} file {path}: top level must be a JSON object")

    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid {file_type} configuration in {path}:\n{_format_validation_errors(e)}") from e
