from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, get_args

BumpPart = Literal["major", "minor", "revision"]
BUMP_PARTS: tuple[BumpPart, ...] = get_args(BumpPart)

_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, slots=True, order=True)
class Version:
    major: int
    minor: int
    revision: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.revision}"

    def bump(self, part: BumpPart) -> Version:
        match part:
            case "major":
                return Version(self.major + 1, 0, 0)
            case "minor":
                return Version(self.major, self.minor + 1, 0)
            case "revision":
                return Version(self.major, self.minor, self.revision + 1)
            case _:
                raise AssertionError(f"unexpected bump part: {part}")

    @classmethod
    def parse(cls, text: str) -> Version | None:
        m = _VERSION_RE.match(text.strip())
        if m is None:
            return None
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)))
