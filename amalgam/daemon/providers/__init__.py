"""Collaborators the core talks to: search, clipboard, file browser."""

from .base import SearchProvider, ClipboardReader, ClipboardWriter, FileLocator
from .filesystem import FileSystemSearchProvider, list_scopes
from .clipboard import (
    SystemClipboardReader,
    PyperclipWriter,
    classify_paths,
    encode_image,
    interpret_clipboard,
)
from .locator import SystemFileLocator

__all__ = [
    "SearchProvider",
    "ClipboardReader",
    "ClipboardWriter",
    "FileLocator",
    "FileSystemSearchProvider",
    "list_scopes",
    "SystemClipboardReader",
    "PyperclipWriter",
    "classify_paths",
    "encode_image",
    "interpret_clipboard",
    "SystemFileLocator",
]
