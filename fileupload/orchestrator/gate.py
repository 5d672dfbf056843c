"""Admission gate run before a file becomes an upload task."""
import inspect
import logging
from typing import Optional

from ..models import RawFile
from ..protocols import BeforeUpload

logger = logging.getLogger(__name__)


class ValidationGate:
    """
    Wraps an optional ``before_upload`` predicate.

    The predicate may return a bool or an awaitable resolving to one; both
    go through the same async path. A rejected or failing predicate drops
    the file without surfacing an error.
    """

    def __init__(self, before_upload: Optional[BeforeUpload] = None):
        self._before_upload = before_upload

    async def admit(self, raw: RawFile) -> bool:
        if self._before_upload is None:
            return True

        try:
            result = self._before_upload(raw)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.debug(f"before_upload raised for {raw.name}, skipping: {e}")
            return False

        if not result:
            logger.debug(f"before_upload rejected {raw.name}")
            return False
        return True
