"""
Object storage client interface and the bundled directory-backed store.

Keys mirror the local layout: `<submission date>/<file name>`.
"""

import asyncio
from pathlib import Path
from typing import Optional, Protocol, Union

from lr_billing.core.config import settings
from lr_billing.core.constants import PDF_CONTENT_TYPE, XLSX_CONTENT_TYPE
from lr_billing.logging_config import get_logger
from lr_billing.schemas import UploadResult

logger = get_logger(__name__)


def content_type_for(path: Path) -> str:
    return PDF_CONTENT_TYPE if path.suffix.lower() == ".pdf" else XLSX_CONTENT_TYPE


class ObjectStorage(Protocol):
    async def put(self, local_path: Union[str, Path], destination_folder: str) -> UploadResult:
        ...

    async def put_buffer(self, data: bytes, key: str, content_type: str) -> UploadResult:
        ...

    async def delete(self, url_or_key: str) -> UploadResult:
        ...


class LocalObjectStorage:
    """
    Stores objects as files under `root`; URLs are `<public_url>/<key>` or file URIs.
    """

    def __init__(self, root: Union[str, Path, None] = None, public_url: Optional[str] = None):
        self.root = Path(root or settings.STORAGE_DIR).resolve()
        self.public_url = (public_url if public_url is not None else settings.STORAGE_PUBLIC_URL).rstrip("/")

    def _target(self, key: str) -> Path:
        target = (self.root / key.lstrip("/")).resolve()
        if self.root not in target.parents:
            raise ValueError(f"Key escapes storage root: {key}")
        return target

    def url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{key}"
        return self._target(key).as_uri()

    def key_for(self, url_or_key: str) -> str:
        if self.public_url and url_or_key.startswith(self.public_url + "/"):
            return url_or_key[len(self.public_url) + 1:]
        if url_or_key.startswith("file://"):
            return str(Path(url_or_key[len("file://"):]).relative_to(self.root))
        return url_or_key

    async def put(self, local_path: Union[str, Path], destination_folder: str) -> UploadResult:
        source = Path(local_path)
        key = f"{destination_folder.strip('/')}/{source.name}"
        try:
            data = await asyncio.to_thread(source.read_bytes)
        except OSError as e:
            logger.error(
                "Storage upload error",
                extra={"extra_fields": {"key": key, "error": str(e)}},
            )
            return UploadResult(file=source.name, success=False, error=str(e))
        return await self.put_buffer(data, key, content_type_for(source))

    async def put_buffer(self, data: bytes, key: str, content_type: str) -> UploadResult:
        name = Path(key).name
        try:
            target = self._target(key)
            target.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, data)
        except (OSError, ValueError) as e:
            logger.error(
                "Storage upload error",
                extra={"extra_fields": {"key": key, "content_type": content_type, "error": str(e)}},
            )
            return UploadResult(file=name, success=False, error=str(e))
        return UploadResult(file=name, success=True, url=self.url_for(key))

    async def delete(self, url_or_key: str) -> UploadResult:
        key = self.key_for(url_or_key)
        name = Path(key).name
        try:
            target = self._target(key)
            target.unlink()
        except FileNotFoundError:
            return UploadResult(file=name, success=False, error="Object not found")
        except (OSError, ValueError) as e:
            return UploadResult(file=name, success=False, error=str(e))
        return UploadResult(file=name, success=True)
