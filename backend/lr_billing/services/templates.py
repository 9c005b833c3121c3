"""
Template store: fixed-layout Excel templates loaded once, parsed per use.

The raw bytes of each template are cached for the life of the process. Every
`get()` parses a fresh workbook from those bytes, so concurrent renderers never
share a mutable document.
"""

import io
import threading
from pathlib import Path
from typing import Dict, Iterable, Union

from openpyxl import Workbook, load_workbook

from lr_billing.core.errors import TemplateNotFoundError
from lr_billing.logging_config import get_logger

logger = get_logger(__name__)


class TemplateStore:
    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._cache: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get_bytes(self, template_name: str) -> bytes:
        """
        Raw bytes of a template, read from disk on first request only.

        Raises:
            TemplateNotFoundError: If the template file does not exist.
        """
        cached = self._cache.get(template_name)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._cache.get(template_name)
            if cached is not None:
                return cached

            path = self.directory / template_name
            if not path.is_file():
                logger.error(
                    "Template missing",
                    extra={"extra_fields": {"template": template_name, "path": str(path)}},
                )
                raise TemplateNotFoundError(template_name, str(path))

            data = path.read_bytes()
            self._cache[template_name] = data
            logger.info(
                "Template loaded",
                extra={"extra_fields": {"template": template_name, "bytes": len(data)}},
            )
            return data

    def get(self, template_name: str) -> Workbook:
        """Freshly parsed working copy of the named template."""
        return load_workbook(io.BytesIO(self.get_bytes(template_name)))

    def preload(self, template_names: Iterable[str]) -> None:
        """Load every named template, failing fast on the first missing one."""
        for name in template_names:
            self.get_bytes(name)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
