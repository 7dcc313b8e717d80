"""
Atomic JSON file writes.

Every file devark persists (host settings layers, its own config, the hook
sync record) goes through ``atomic_write_json``: the payload is serialized
first, written to a temp file in the destination directory and then moved
over the destination with ``os.replace``. Readers either see the previous
file or the complete new one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_json(path: Path, data: Any, *, indent: int = 2) -> None:
    """
    Write ``data`` as JSON to ``path`` atomically.

    Args:
        path: Destination file. Parent directories are created as needed.
        data: JSON-serializable payload
        indent: Indentation passed to ``json.dumps``

    Raises:
        TypeError / ValueError: If ``data`` is not JSON-serializable. Nothing
            is written in that case.
        OSError: If the temp file cannot be written or the rename fails. The
            temp file is removed and the destination is left untouched.
    """
    # Serialize before touching the filesystem
    content = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"

    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (replaces existing file)
        os.replace(temp_path, path)

    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
