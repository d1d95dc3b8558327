"""Data models for the Amalgam daemon."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Tuple


@dataclass(frozen=True)
class SearchIntent:
    """The search parameters the user currently has expressed."""
    query_text: str = ""
    scope: str = ""
    case_sensitive: bool = False
    use_regex: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.query_text.strip()


@dataclass(frozen=True)
class FileMatch:
    """A single name match returned by a search provider."""
    name: str
    path: str
    is_dir: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'path': self.path, 'is_dir': self.is_dir}


@dataclass(frozen=True)
class SearchState:
    """Committed search results plus the progress indicator."""
    results: Tuple[FileMatch, ...] = field(default_factory=tuple)
    in_flight: bool = False
    version: int = 0


class ClipboardKind(str, Enum):
    """Content kinds reported by the clipboard watcher."""
    TEXT = "text"
    IMAGE = "image"
    FILE_REFERENCE = "file-link"
    FOLDER = "folder"

    @classmethod
    def _missing_(cls, value):
        if value == "file-reference":
            return cls.FILE_REFERENCE
        return None

    @property
    def writable(self) -> "ClipboardKind":
        """Kind to use when writing back; writers have no folder kind."""
        if self is ClipboardKind.FOLDER:
            return ClipboardKind.FILE_REFERENCE
        return self


@dataclass(frozen=True)
class ClipboardEntry:
    """One distinct piece of clipboard content in the history."""
    id: str
    kind: ClipboardKind
    content: str

    @property
    def paths(self) -> Tuple[str, ...]:
        """Paths held by a file-link or folder entry."""
        if self.kind not in (ClipboardKind.FILE_REFERENCE, ClipboardKind.FOLDER):
            return ()
        return tuple(line for line in self.content.splitlines() if line.strip())

    def to_record(self) -> Dict[str, str]:
        """Serialize to the persisted snapshot record shape."""
        return {'id': self.id, 'kind': self.kind.value, 'content': self.content}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ClipboardEntry":
        return cls(
            id=str(record['id']),
            kind=ClipboardKind(record['kind']),
            content=str(record['content'])
        )
