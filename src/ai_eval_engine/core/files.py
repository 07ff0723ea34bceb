"""
JSON record files shared by the baseline and snapshot stores.

One record per file, written to a temp file in the same directory and then
renamed over the target, so a reader sees either the old record or the new
one and never a partial write.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def record_filename(record_id: str) -> str:
    """
    File name for a record id.

    Ids made only of ``[A-Za-z0-9._-]`` and not starting with a dot are used
    as-is. Any other id is sanitised to that alphabet and suffixed with '~' plus
    a short sha256 of the raw id. A plain id can never contain '~', so two ids
    never share a file.
    """
    if not record_id:
        raise ValueError("Record id must be a non-empty string")
    if not _UNSAFE_CHARS.search(record_id) and not record_id.startswith("."):
        return f"{record_id}.json"
    safe = _UNSAFE_CHARS.sub("_", record_id).replace(".", "_")
    digest = hashlib.sha256(record_id.encode("utf-8")).hexdigest()[:12]
    return f"{safe}~{digest}.json"


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_json(path: Path) -> dict[str, Any] | None:
    """Load a record, or None if the file does not exist."""
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return None


def iter_json_records(directory: Path):
    """Yield every record in ``directory``, skipping temp files."""
    if not directory.exists():
        return
    for path in sorted(directory.glob("*.json")):
        if path.name.startswith("."):
            continue
        try:
            data = read_json(path)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping unparseable record file {path}: {e}")
            continue
        if data is not None:
            yield path, data
