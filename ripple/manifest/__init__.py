"""The JSON manifest holding the project name and version."""

from .document import Document
from .semver import BUMP_PARTS, BumpPart, Version
from .store import ManifestError, read_manifest, write_manifest

__all__ = [
    "BUMP_PARTS",
    "BumpPart",
    "Document",
    "ManifestError",
    "Version",
    "read_manifest",
    "write_manifest",
]
