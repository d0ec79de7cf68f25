"""Reading and writing the JSON manifest.

The manifest is read whole and written whole: no merging with whatever is
on disk at write time.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from ripple.core.logging import get_logger
from ripple.core.result import Err, Ok, Result
from ripple.core.structured import StrDict, as_str_dict
from ripple.platform.files import atomic_write_text

__all__ = ["ManifestError", "read_manifest", "write_manifest"]

_log = get_logger("manifest")


@dataclass(frozen=True, slots=True)
class ManifestError:
    kind: Literal["unreadable", "invalid", "unwritable"]
    message: str
    path: Path | None = None


def read_manifest(path: Path) -> Result[StrDict, ManifestError]:
    """Parse the manifest at path as a JSON object."""
    _log.debug("read", path=str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(_unreadable(path, f"{path} could not be read. File does not exist."))
    except UnicodeDecodeError:
        return Err(_unreadable(path, f"{path} could not be decoded as UTF-8."))
    except OSError as e:
        return Err(_unreadable(path, f"{path} could not be read: {e.strerror or e}"))

    try:
        data = as_str_dict(json.loads(text))
    except json.JSONDecodeError:
        data = None
    if data is None:
        return Err(
            ManifestError(
                kind="invalid",
                message=f"{path} could not be parsed. Make sure it is a valid json document.",
                path=path,
            )
        )
    return Ok(data)


def write_manifest(path: Path, data: StrDict) -> Result[None, ManifestError]:
    """Replace the manifest at path with data, indented by 4 spaces.

    Non-ASCII text is written as-is, and the old file survives a failed write.
    """
    _log.debug("write", path=str(path))
    try:
        atomic_write_text(path, json.dumps(data, indent=4, ensure_ascii=False) + "\n")
    except OSError as e:
        return Err(
            ManifestError(
                kind="unwritable",
                message=f"{path} could not be written: {e.strerror or e}",
                path=path,
            )
        )
    return Ok(None)


def _unreadable(path: Path, message: str) -> ManifestError:
    return ManifestError(kind="unreadable", message=message, path=path)
