# chitchat/infrastructure/attachment_store.py
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from starlette.concurrency import run_in_threadpool

from chitchat.domain.exceptions import NotFoundError

_HANDLE_RE = re.compile(r"[0-9a-f]{32}(\.[A-Za-z0-9]{1,15})?")


class AttachmentStore(ABC):
    @abstractmethod
    async def store(self, data: bytes, file_name: str) -> str:
        pass

    @abstractmethod
    async def load(self, handle: str) -> bytes:
        pass

    @abstractmethod
    async def delete(self, handle: str) -> bool:
        pass


class LocalAttachmentStore(AttachmentStore):
    """Keeps attachment bytes as flat files under one directory.

    Handles are random hex names plus the original extension; anything that
    does not look like a handle is refused before touching the filesystem.
    """

    def __init__(self, upload_dir: str | Path):
        self.root = Path(upload_dir).resolve()

    def _path(self, handle: str) -> Path:
        if not _HANDLE_RE.fullmatch(handle):
            raise NotFoundError(f"Attachment {handle!r} not found")
        return self.root / handle

    @staticmethod
    def _suffix(file_name: str) -> str:
        suffix = Path(file_name).suffix
        if suffix and re.fullmatch(r"\.[A-Za-z0-9]{1,15}", suffix):
            return suffix.lower()
        return ""

    def _write(self, path: Path, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def store(self, data: bytes, file_name: str) -> str:
        handle = f"{uuid.uuid4().hex}{self._suffix(file_name)}"
        await run_in_threadpool(self._write, self._path(handle), data)
        return handle

    async def load(self, handle: str) -> bytes:
        path = self._path(handle)
        if not path.is_file():
            raise NotFoundError(f"Attachment {handle!r} not found")
        return await run_in_threadpool(path.read_bytes)

    async def delete(self, handle: str) -> bool:
        path = self._path(handle)
        if not path.is_file():
            return False
        await run_in_threadpool(path.unlink)
        return True
