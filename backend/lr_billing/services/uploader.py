import asyncio
from pathlib import Path
from typing import List, Optional, Sequence, Union

from lr_billing.core.config import settings
from lr_billing.logging_config import get_logger
from lr_billing.metrics import artifact_uploads_total
from lr_billing.schemas import UploadResult
from lr_billing.services.storage import ObjectStorage

logger = get_logger(__name__)


class UploadDispatcher:
    """
    Pushes finished artifacts to object storage with bounded concurrency.

    Each upload is independent: a failure is reported in that file's result and
    never cancels the others.
    """

    def __init__(self, storage: ObjectStorage, concurrency: Optional[int] = None):
        self.storage = storage
        self.concurrency = concurrency or settings.UPLOAD_CONCURRENCY

    async def upload_one(self, path: Union[str, Path], destination_folder: str) -> UploadResult:
        name = Path(path).name
        try:
            result = await self.storage.put(path, destination_folder)
        except Exception as e:
            logger.error(
                "Upload failed",
                extra={"extra_fields": {"file": name, "folder": destination_folder, "error": str(e)}},
            )
            result = UploadResult(file=name, success=False, error=str(e) or type(e).__name__)

        artifact_uploads_total.labels(status="success" if result.success else "error").inc()
        return result

    async def upload_many(
        self,
        paths: Sequence[Union[str, Path]],
        destination_folder: str,
        concurrency: Optional[int] = None,
    ) -> List[UploadResult]:
        """
        Upload every path into `destination_folder`.

        Args:
            paths: Local files to upload.
            destination_folder: Storage folder, normally the submission date.
            concurrency: Maximum uploads in flight (defaults to UPLOAD_CONCURRENCY).

        Returns:
            One UploadResult per input path, in input order.
        """
        if not paths:
            return []
        semaphore = asyncio.Semaphore(concurrency or self.concurrency)

        async def _bounded(path):
            async with semaphore:
                return await self.upload_one(path, destination_folder)

        results = await asyncio.gather(*[_bounded(p) for p in paths])

        failed = [r.file for r in results if not r.success]
        if failed:
            logger.warning(
                "Some uploads failed",
                extra={"extra_fields": {"folder": destination_folder, "failed": failed, "total": len(results)}},
            )
        return list(results)
