"""Backing-store state as seen by the reconcilers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

LATEST = "$LATEST"


@dataclass(frozen=True)
class Version:
    id: str
    code_sha256: Optional[str] = None
    description: str = ""
    last_modified: Optional[str] = None

    @property
    def is_latest(self) -> bool:
        return self.id == LATEST

    @property
    def number(self) -> Optional[int]:
        """Numeric value of a published version id; ``None`` for ``$LATEST`` or junk."""
        if self.is_latest:
            return None
        try:
            return int(self.id, 10)
        except ValueError:
            return None


@dataclass(frozen=True)
class FunctionRecord:
    name: str
    arn: str
    code_sha256: Optional[str] = None
    version: str = LATEST

    @property
    def has_published_version(self) -> bool:
        return Version(self.version).number is not None


@dataclass(frozen=True)
class Alias:
    name: str
    target_version_id: str
    arn: Optional[str] = None
    additional_version_ids: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def referenced_version_ids(self) -> FrozenSet[str]:
        return frozenset({self.target_version_id}) | self.additional_version_ids
