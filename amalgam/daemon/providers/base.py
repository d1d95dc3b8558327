"""Protocols for the collaborators the core talks to."""

from typing import Protocol, Sequence, Optional, Tuple

from ..models import FileMatch, ClipboardKind


class SearchProvider(Protocol):
    """Finds file-system entries whose names match a query."""

    async def search_files(
        self,
        query: str,
        scope: str,
        use_regex: bool,
        case_sensitive: bool
    ) -> Sequence[FileMatch]:
        ...


class ClipboardReader(Protocol):
    """Reads the current system clipboard content, if any."""

    def read(self) -> Optional[Tuple[ClipboardKind, str]]:
        ...


class ClipboardWriter(Protocol):
    """Puts content back on the system clipboard."""

    async def write(self, kind: ClipboardKind, content: str) -> None:
        ...


class FileLocator(Protocol):
    """Reveals a path in the OS file browser."""

    async def locate(self, path: str) -> None:
        ...

