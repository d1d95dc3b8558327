"""File-name search by walking a scope, and scope discovery."""

import asyncio
import os
import re
import sys
from typing import List, Callable

import psutil
from loguru import logger

from ..errors import ProviderError
from ..models import FileMatch


def list_scopes() -> List[str]:
    """
    List the volumes a search can be restricted to.

    Windows gets existing drive roots from C: to Z:. Other platforms get
    mounted partitions with the root filesystem first.
    """
    if sys.platform == "win32":
        drives = []
        for letter in "CDEFGHIJKLMNOPQRSTUVWXYZ":
            root = f"{letter}:\\"
            if os.path.exists(root):
                drives.append(root)
        return drives or ["C:\\"]

    scopes = ["/"]
    try:
        for part in psutil.disk_partitions(all=False):
            if part.mountpoint not in scopes:
                scopes.append(part.mountpoint)
    except (OSError, RuntimeError) as e:
        logger.warning(f"Could not list partitions: {e}")
    return scopes


class FileSystemSearchProvider:
    """
    Matches entry names under a scope without any index.

    The walk is depth-first, limited to ``max_depth`` levels below the
    scope root and stops after ``max_results`` matches. Directories that
    cannot be read are skipped.
    """

    def __init__(self, max_depth: int = 7, max_results: int = 50):
        self.max_depth = max_depth
        self.max_results = max_results

    async def search_files(
        self,
        query: str,
        scope: str,
        use_regex: bool = False,
        case_sensitive: bool = False
    ) -> List[FileMatch]:
        if not query:
            return []

        root = scope or list_scopes()[0]
        matcher = self._build_matcher(query, use_regex, case_sensitive)
        return await asyncio.to_thread(self._walk, root, matcher)

    def _build_matcher(
        self,
        query: str,
        use_regex: bool,
        case_sensitive: bool
    ) -> Callable[[str], bool]:
        if use_regex:
            flags = 0 if case_sensitive else re.IGNORECASE
            try:
                pattern = re.compile(query, flags)
            except re.error as e:
                raise ProviderError(f"Invalid regular expression {query!r}: {e}") from e
            return lambda name: pattern.search(name) is not None

        if case_sensitive:
            return lambda name: query in name

        needle = query.lower()
        return lambda name: needle in name.lower()

    def _walk(self, root: str, matcher: Callable[[str], bool]) -> List[FileMatch]:
        if not os.path.isdir(root):
            raise ProviderError(f"Scope is not a directory: {root}")

        results: List[FileMatch] = []
        base_depth = root.rstrip("\\/").count(os.sep)

        for dirpath, dirnames, filenames in os.walk(root, onerror=self._on_walk_error):
            depth = dirpath.rstrip("\\/").count(os.sep) - base_depth

            entries = [(name, True) for name in dirnames]
            entries += [(name, False) for name in filenames]
            for name, is_dir in entries:
                if matcher(name):
                    results.append(FileMatch(
                        name=name,
                        path=os.path.join(dirpath, name),
                        is_dir=is_dir
                    ))
                    if len(results) >= self.max_results:
                        return results

            # Children of this directory sit at depth + 1.
            if depth + 1 >= self.max_depth:
                dirnames[:] = []

        return results

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable path: {error}")
