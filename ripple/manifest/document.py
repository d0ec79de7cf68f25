from __future__ import annotations

from dataclasses import dataclass

from ripple.core.result import Err, Ok, Result
from ripple.core.structured import StrDict, get_str
from ripple.manifest.semver import BumpPart, Version
from ripple.manifest.store import ManifestError


@dataclass(slots=True)
class Document:
    """A loaded manifest plus the version it was loaded at.

    `data` is the whole JSON object and is what gets written back;
    `increment` keeps `data["version"]` in sync with `to`.
    """

    data: StrDict
    origin: Version
    to: Version

    @classmethod
    def from_manifest(cls, data: StrDict) -> Result[Document, ManifestError]:
        if get_str(data, "name") is None:
            return Err(ManifestError(kind="invalid", message='manifest has no "name"'))
        raw = data.get("version")
        version = Version.parse(raw) if isinstance(raw, str) else None
        if version is None:
            return Err(
                ManifestError(
                    kind="invalid",
                    message=f'manifest "version" must look like major.minor.revision, got {raw!r}',
                )
            )
        return Ok(cls(data=data, origin=version, to=version))

    @property
    def name(self) -> str:
        return str(self.data["name"])

    @property
    def version(self) -> str:
        return str(self.to)

    def rebase(self, version: Version) -> None:
        """Continue from version instead of the one that was loaded."""
        self.to = version
        self.data["version"] = str(version)

    def increment(self, part: BumpPart) -> Version:
        self.to = self.to.bump(part)
        self.data["version"] = str(self.to)
        return self.to
