"""Change notifications and the operations derived from them."""

import os
import stat as stat_module
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..models import RemoteResourceRef


class EntryKind(str, Enum):
    """Kind of a filesystem entry."""

    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


class OperationKind(str, Enum):
    """Remote operations the syncer can emit."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass(frozen=True)
class EntryMetadata:
    """The subset of ``stat`` information the syncer needs."""

    kind: EntryKind
    nlink: int = 1
    size: int = 0
    mtime: float = 0.0

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    @property
    def is_removed(self) -> bool:
        return self.nlink == 0

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "EntryMetadata":
        """Create metadata from an ``os.stat`` result."""
        if stat_module.S_ISREG(st.st_mode):
            kind = EntryKind.FILE
        elif stat_module.S_ISDIR(st.st_mode):
            kind = EntryKind.DIRECTORY
        else:
            kind = EntryKind.OTHER
        return cls(kind=kind, nlink=st.st_nlink, size=st.st_size, mtime=st.st_mtime)

    @classmethod
    def from_path(cls, path: Path) -> "EntryMetadata":
        """Stat a path. Raises OSError if it does not exist."""
        return cls.from_stat(os.stat(path))

    def removed(self) -> "EntryMetadata":
        """Copy of this metadata describing the entry after removal."""
        return EntryMetadata(kind=self.kind, nlink=0, size=self.size, mtime=self.mtime)


@dataclass(frozen=True)
class ChangeNotification:
    """A raw change reported by the watcher.

    ``previous is None`` marks a new entry, ``current.nlink == 0`` a removal
    and anything else a modification. All three fields being ``None`` is
    the control event sent once the initial walk finished.
    """

    path: Optional[Path]
    current: Optional[EntryMetadata]
    previous: Optional[EntryMetadata]

    @classmethod
    def walk_complete(cls) -> "ChangeNotification":
        return cls(path=None, current=None, previous=None)

    @property
    def is_walk_complete(self) -> bool:
        return self.path is None and self.current is None and self.previous is None


@dataclass(frozen=True)
class SyncOperation:
    """A remote operation derived from one notification."""

    kind: OperationKind
    path: Path
    ref: RemoteResourceRef

    @property
    def description(self) -> str:
        """Human-readable summary used in status messages."""
        verb = {
            OperationKind.CREATE: "created",
            OperationKind.MODIFY: "modified",
            OperationKind.DELETE: "deleted",
        }[self.kind]
        return f"{self.path} {verb}"
