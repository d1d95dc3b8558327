"""Reveal paths in the platform file browser."""

import asyncio
import os
import sys
from typing import List

from loguru import logger

from ..errors import ActionError


class SystemFileLocator:
    """Opens the OS file browser with a path selected (or its folder shown)."""

    def command_for(self, path: str) -> List[str]:
        if sys.platform == "win32":
            return ["explorer", f"/select,{path}"]
        if sys.platform == "darwin":
            return ["open", "-R", path]
        target = path if os.path.isdir(path) else os.path.dirname(path)
        return ["xdg-open", target]

    async def locate(self, path: str) -> None:
        if not os.path.exists(path):
            raise ActionError(f"Path does not exist: {path}")

        cmd = self.command_for(path)
        logger.debug(f"Locating {path} with {cmd[0]}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            raise ActionError(f"Could not start {cmd[0]}: {e}") from e

        returncode = await proc.wait()
        # explorer.exe exits with 1 even when it succeeds
        if returncode != 0 and sys.platform != "win32":
            raise ActionError(f"{cmd[0]} exited with status {returncode}")
