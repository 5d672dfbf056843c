"""Single file upload task."""
import asyncio
import logging
from typing import Any, Callable, Optional

from ..models import UploadConfig, UploadFile, UploadStatus
from ..protocols import ITransport
from ..utils.events import EventEmitter
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

# update(uid, **fields) -> merged entry, or None when the uid is gone or terminal
UpdateFn = Callable[..., Optional[UploadFile]]


class UploadHandle:
    """
    Handle to one running upload.

    ``cancelled`` is set when the entry is removed; the task checks it before
    applying any event, so late progress or completion is dropped.
    """

    def __init__(self, uid: str):
        self.uid = uid
        self.cancelled = False
        self.task: Optional[asyncio.Task] = None

    def cancel(self, abort: bool = False) -> None:
        self.cancelled = True
        if abort and self.task and not self.task.done():
            self.task.cancel()

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()


class UploadTask:
    """
    Drives one admitted file: ready -> uploading -> success | error.

    The entry is already in the list as ``ready`` when the task is created.
    All writes go through ``update`` so concurrent tasks never overwrite
    each other's fields.
    """

    def __init__(
        self,
        entry: UploadFile,
        transport: ITransport,
        config: UploadConfig,
        handle: UploadHandle,
        update: UpdateFn,
        events: EventEmitter,
    ):
        self._entry = entry
        self._transport = transport
        self._config = config
        self._handle = handle
        self._update = update
        self._events = events

    @property
    def uid(self) -> str:
        return self._entry.uid

    async def run(self) -> None:
        raw = self._entry.raw
        reporter = ProgressReporter(self._on_percent)

        try:
            response = await self._transport.send(raw, self._config, reporter)
        except Exception as e:
            logger.warning(f"Upload failed: {self._entry.name}: {str(e) or type(e).__name__}")
            await self._finish(UploadStatus.ERROR, error=e)
            return

        logger.info(f"Uploaded: {self._entry.name}")
        await self._finish(UploadStatus.SUCCESS, response=response)

    async def _on_percent(self, percent: int) -> None:
        if self._handle.cancelled:
            return
        if self._update(self.uid, status=UploadStatus.UPLOADING, percent=percent) is None:
            return
        await self._events.emit("progress", percent, self._entry.raw)

    async def _finish(self, status: UploadStatus, response: Any = None, error: Optional[BaseException] = None) -> None:
        if self._handle.cancelled:
            logger.debug(f"Ignoring {status.value} for removed upload {self._entry.name}")
            return

        if status == UploadStatus.SUCCESS:
            fields = {"status": status, "response": response}
        else:
            fields = {"status": status, "error": error}
        if self._update(self.uid, **fields) is None:
            return

        raw = self._entry.raw
        if status == UploadStatus.SUCCESS:
            await self._events.emit("success", response, raw)
        else:
            await self._events.emit("error", error, raw)
        await self._events.emit("change", raw)
