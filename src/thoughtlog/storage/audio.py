"""Local audio storage. Files are written before analysis so a recording is never lost."""
import asyncio
import datetime as dt
import logging
import os
import uuid
from pathlib import Path
from typing import Union

from thoughtlog.ai.whisper_client import filename_for

logger = logging.getLogger(__name__)

_MIME_TYPES = {
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
}


def mime_type_for(path: Union[str, Path]) -> str:
    """MIME type of a stored recording, from its suffix (wav when unknown)."""
    return _MIME_TYPES.get(Path(path).suffix.lower(), "audio/wav")


class AudioStore:
    """Stores raw recordings under one directory as `{date}-{uuid}{suffix}`."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    async def save(self, audio: bytes, log_date: dt.date, mime_type: str = "audio/wav") -> Path:
        """Write the recording atomically and return its path."""
        suffix = Path(filename_for(mime_type)).suffix
        path = self.root / f"{log_date.isoformat()}-{uuid.uuid4().hex}{suffix}"
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, path, audio)
        logger.info("Stored %d bytes of audio at %s", len(audio), path)
        return path

    async def read(self, path: Union[str, Path]) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, Path(path).read_bytes)

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).is_file()

    def delete(self, path: Union[str, Path]) -> bool:
        """Remove a stored file. Returns False if it was already gone."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return False
        logger.info("Deleted audio %s", path)
        return True

    def _write(self, path: Path, audio: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(audio)
        os.replace(tmp, path)
