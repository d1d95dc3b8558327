"""System clipboard access through pyperclip and Pillow."""

import asyncio
import base64
import os
from io import BytesIO
from typing import Any, Optional, Sequence, Tuple

import pyperclip
from loguru import logger
from PIL import Image, ImageGrab

from ..errors import ActionError
from ..models import ClipboardKind


def classify_paths(paths: Sequence[str]) -> ClipboardKind:
    """Kind for a file drop: one existing directory is a folder, else file-link."""
    if len(paths) == 1 and os.path.isdir(paths[0].strip()):
        return ClipboardKind.FOLDER
    return ClipboardKind.FILE_REFERENCE


def encode_image(image: Image.Image) -> str:
    """Encode an image as a PNG data URI."""
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def interpret_clipboard(grabbed: Any, text: Optional[str]) -> Optional[Tuple[ClipboardKind, str]]:
    """
    Turn raw clipboard reads into a ``(kind, content)`` pair.

    ``grabbed`` is what ``ImageGrab.grabclipboard()`` returned: a list of
    file names, an image, or ``None``. A file drop wins over text, and
    text wins over an image.
    """
    if isinstance(grabbed, list):
        paths = [p for p in grabbed if isinstance(p, str) and p.strip()]
        if paths:
            return classify_paths(paths), "\n".join(paths)

    if text:
        return ClipboardKind.TEXT, text

    if isinstance(grabbed, Image.Image):
        return ClipboardKind.IMAGE, encode_image(grabbed)

    return None


class SystemClipboardReader:
    """Reads file drops, text and images from the system clipboard."""

    def read(self) -> Optional[Tuple[ClipboardKind, str]]:
        return interpret_clipboard(self._grab(), self._paste())

    def _grab(self) -> Any:
        try:
            return ImageGrab.grabclipboard()
        except (NotImplementedError, OSError) as e:
            logger.debug(f"Clipboard image read unavailable: {e}")
            return None

    def _paste(self) -> Optional[str]:
        try:
            return pyperclip.paste()
        except pyperclip.PyperclipException as e:
            logger.debug(f"Clipboard read failed: {e}")
            return None


class PyperclipWriter:
    """
    Writes clipboard content back to the system clipboard.

    pyperclip only carries text, so image and file-link content is refused
    with an ``ActionError``.
    """

    async def write(self, kind: ClipboardKind, content: str) -> None:
        if kind is not ClipboardKind.TEXT:
            raise ActionError(f"Writing {kind.value} content is not supported on this platform")

        try:
            await asyncio.to_thread(pyperclip.copy, content)
        except pyperclip.PyperclipException as e:
            raise ActionError(f"Could not write to clipboard: {e}") from e
