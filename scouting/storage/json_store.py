# scouting/storage/json_store.py
import json
import os
import tempfile
from pathlib import Path
from typing import Any, List

from loguru import logger


class ContentError(Exception):
    """A content or data file is missing, unreadable, or not valid JSON."""

    pass


def dumps(data: Any) -> str:
    """Serialized form used for every file this project writes."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ContentError(f"{path} does not exist") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ContentError(f"Could not read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def read_json_or(path: Path, fallback: Any) -> Any:
    """Like read_json, but a missing file yields `fallback`."""
    if not path.exists():
        return fallback
    return read_json(path)


def write_json(path: Path, data: Any) -> None:
    """Writes JSON atomically: a temp file in the same directory, then a rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(dumps(data))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug(f"Wrote {path}")


def write_json_if_changed(path: Path, data: Any) -> bool:
    """Writes only when the serialized content differs from the file on disk."""
    text = dumps(data)
    try:
        if path.read_text(encoding="utf-8") == text:
            return False
    except FileNotFoundError:
        pass
    write_json(path, data)
    return True


def list_json_files(directory: Path, name_filter: str = "") -> List[Path]:
    """Sorted *.json files in `directory` whose name contains `name_filter`."""
    if not directory.is_dir():
        raise ContentError(f"Directory not found: {directory}")
    needle = name_filter.lower()
    return sorted(
        p
        for p in directory.iterdir()
        if p.is_file() and p.suffix == ".json" and needle in p.name.lower()
    )
