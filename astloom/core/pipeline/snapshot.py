"""Immutable, content-hashed pipeline artifacts.

A Snapshot wraps the output of a successful step. The pipeline keeps
references to snapshots as rollback points, so equality is identity:
two snapshots with the same hash are still distinct rollback targets.
The hash (sha256 of the serialized payload) is for audit and dedup only.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from ..uniast.models import Repository


class SnapshotKind(str, Enum):
    AST = "ast"
    SOURCE_UNIAST = "source-uniast"
    TARGET_UNIAST = "target-uniast"


def content_hash(raw: Union[bytes, str, None]) -> str:
    if raw is None:
        raw = b""
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


@dataclass(frozen=True, eq=False)
class Snapshot:
    kind: SnapshotKind
    hash: str
    payload: Any
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def of_repository(cls, kind: SnapshotKind, repo: Repository) -> "Snapshot":
        """Snapshot a repository, hashing its canonical JSON form."""
        return new_snapshot(kind, repo, repo.to_json().encode("utf-8"))

    @property
    def repository(self) -> Optional[Repository]:
        return self.payload if isinstance(self.payload, Repository) else None

    def summary(self) -> dict:
        return {
            "kind": self.kind.value,
            "hash": self.hash,
            "created_at": self.created_at.isoformat(),
        }


def new_snapshot(kind: Union[SnapshotKind, str], payload: Any, raw: Union[bytes, str, None]) -> Snapshot:
    """Create a snapshot whose hash is the sha256 hex digest of ``raw``."""
    return Snapshot(kind=SnapshotKind(kind), hash=content_hash(raw), payload=payload)
