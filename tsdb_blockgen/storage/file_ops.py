"""
File operations shared by the block writers.

Provides:
- Directory creation with errors wrapped as StorageIOError
- Atomic JSON writes using temp file + rename
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ..exceptions import StorageIOError


def ensure_directory(path: Path, stage: str = "create_directory") -> None:
    """Ensure directory exists, creating if necessary.

    Args:
        path: Directory path to ensure exists
        stage: Stage name reported if creation fails
    """
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StorageIOError(stage, str(path), e) from e


def write_json_atomic(path: Path, data: dict[str, Any], stage: str = "write_json") -> None:
    """Write JSON file atomically using temp file + rename.

    Args:
        path: Target path for JSON file
        data: Data to serialize as JSON
        stage: Stage name reported if the write fails
    """
    ensure_directory(path.parent, stage)

    # Write to temp file first
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".tmp_",
        suffix=".json",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent="\t", default=_json_serializer))
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename
        os.replace(temp_path, path)
    except (OSError, TypeError, ValueError) as e:
        # Clean up temp file on error
        try:
            os.remove(temp_path)
        except OSError:
            pass
        raise StorageIOError(stage, str(path), e) from e


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for types not handled by default.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation
    """
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
