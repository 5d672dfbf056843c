"""Core orchestrator - owns the upload list and runs one task per file."""
import asyncio
import logging
import uuid
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from ..models import RawFile, UploadConfig, UploadFile, UploadStatus
from ..protocols import BeforeUpload, ITransport
from ..services.transport import HTTPMultipartTransport
from ..utils.events import EventEmitter
from .dropzone import DropZone
from .file_collector import FileLike, FilePicker, to_raw_files
from .gate import ValidationGate
from .task import UploadHandle, UploadTask

logger = logging.getLogger(__name__)


def new_uid() -> str:
    return uuid.uuid4().hex


class UploadOrchestrator:
    """
    Runs independent uploads for submitted files and keeps their state.

    The upload list is newest first. Every write to it is a function of the
    current list (``_commit``), so interleaved completions from different
    tasks never lose each other's updates.

    Usage:
        async with UploadOrchestrator(UploadConfig(action=url)) as uploader:
            uploader.on_success(lambda body, raw: print(raw.name, body))
            await uploader.select(["a.txt", "b.txt"])
            files = await uploader.wait()
    """

    def __init__(
        self,
        config: UploadConfig,
        before_upload: Optional[BeforeUpload] = None,
        transport: Optional[ITransport] = None,
        uid_factory: Optional[Callable[[], str]] = None,
        auth: Optional[httpx.Auth] = None,
        cookies: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Upload configuration (endpoint, field name, headers...)
            before_upload: Optional admission predicate, sync or async
            transport: Pre-built transport; an HTTP one is created otherwise
            uid_factory: Id generator for new entries
            auth: Auth sent only when ``config.with_credentials`` is set
            cookies: Cookies sent only when ``config.with_credentials`` is set
        """
        self._config = config
        self._gate = ValidationGate(before_upload)
        self._external_transport = transport
        self._auth = auth
        self._cookies = cookies
        self._uid_factory = uid_factory or new_uid

        self._transport: Optional[ITransport] = None
        self._owned_transport: Optional[HTTPMultipartTransport] = None
        self._events = EventEmitter()
        self._tasks: Tuple[UploadFile, ...] = ()
        self._handles: Dict[str, UploadHandle] = {}
        self._drop_zone: Optional[DropZone] = None

    async def __aenter__(self):
        if self._external_transport is not None:
            self._transport = self._external_transport
        else:
            self._owned_transport = HTTPMultipartTransport(
                timeout=self._config.timeout,
                auth=self._auth,
                cookies=self._cookies,
            )
            await self._owned_transport.__aenter__()
            self._transport = self._owned_transport
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            for handle in list(self._handles.values()):
                handle.cancel(abort=True)
        await self._gather_pending()
        if self._owned_transport is not None:
            await self._owned_transport.__aexit__(exc_type, exc, tb)
            self._owned_transport = None
        self._transport = None

    # Event subscription methods
    def on_change(self, callback: Callable[[RawFile], None]):
        """Called once per task after its success or error callback. Receives the raw file."""
        self._events.on("change", callback)

    def on_progress(self, callback: Callable[[int, RawFile], None]):
        """Called for each progress sample below 100. Receives (percent, raw file)."""
        self._events.on("progress", callback)

    def on_success(self, callback: Callable[[object, RawFile], None]):
        """Called when an upload succeeds. Receives (response body, raw file)."""
        self._events.on("success", callback)

    def on_error(self, callback: Callable[[BaseException, RawFile], None]):
        """Called when an upload fails. Receives (error, raw file)."""
        self._events.on("error", callback)

    def on_remove(self, callback: Callable[[UploadFile], None]):
        """Called when an entry is removed. Receives its last snapshot."""
        self._events.on("remove", callback)

    # State
    @property
    def file_list(self) -> List[UploadFile]:
        """Snapshot of the upload list, newest first."""
        return list(self._tasks)

    def get(self, uid: str) -> Optional[UploadFile]:
        for entry in self._tasks:
            if entry.uid == uid:
                return entry
        return None

    @property
    def stats(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in UploadStatus}
        for entry in self._tasks:
            counts[entry.status.value] += 1
        counts["total"] = len(self._tasks)
        return counts

    @property
    def is_dragover(self) -> bool:
        return self._drop_zone is not None and self._drop_zone.is_dragover

    def _commit(self, fn: Callable[[Tuple[UploadFile, ...]], Iterable[UploadFile]]) -> None:
        """Replace the list with ``fn`` applied to its current value."""
        self._tasks = tuple(fn(self._tasks))

    def update_task(self, uid: str, **fields) -> Optional[UploadFile]:
        """
        Merge ``fields`` into the entry for ``uid``.

        Callers may set ``percent`` and move a ``ready`` entry to
        ``uploading``; success and error are recorded only by the entry's own
        upload task. Raises ValueError for fields that cannot change, an
        out-of-range percent, a backwards or terminal status, or a
        ``response``/``error`` payload. Returns the new entry, or None when
        the uid is unknown or the entry already finished.
        """
        unknown = set(fields) - {"status", "percent"}
        if unknown:
            raise ValueError(f"Cannot update {', '.join(sorted(unknown))}; only status and percent")
        if "status" in fields and UploadStatus(fields["status"]).is_terminal:
            raise ValueError("success and error are recorded by the upload task")
        return self._record(uid, **fields)

    def _record(self, uid: str, **fields) -> Optional[UploadFile]:
        """Apply a validated transition; terminal entries never change."""
        updated: Optional[UploadFile] = None

        def apply(tasks):
            nonlocal updated
            result = []
            for entry in tasks:
                if entry.uid == uid and not entry.done:
                    updated = entry.advance(**fields)
                    result.append(updated)
                else:
                    result.append(entry)
            return result

        self._commit(apply)
        return updated

    async def remove(self, uid: str) -> Optional[UploadFile]:
        """
        Delete the entry for ``uid`` and fire ``remove`` with it.

        The request itself keeps running unless ``abort_on_remove`` is set;
        anything it reports afterwards is ignored. Unknown uids are a no-op.
        """
        removed: Optional[UploadFile] = None

        def apply(tasks):
            nonlocal removed
            kept = []
            for entry in tasks:
                if entry.uid == uid and removed is None:
                    removed = entry
                else:
                    kept.append(entry)
            return kept

        self._commit(apply)
        if removed is None:
            return None

        handle = self._handles.get(uid)
        if handle is not None:
            handle.cancel(abort=self._config.abort_on_remove)
        logger.debug(f"Removed {removed.name} ({removed.status.value})")
        await self._events.emit("remove", removed)
        return removed

    # Ingestion
    async def select(self, paths: Sequence[FileLike]) -> List[UploadFile]:
        """File-picker channel: apply accept/multiple, then submit."""
        picker = FilePicker(accept=self._config.accept, multiple=self._config.multiple)
        return await self.submit(picker.select(paths))

    def drop_zone(self) -> DropZone:
        """Drop channel wired to ``submit``."""
        if self._drop_zone is None:
            self._drop_zone = DropZone(
                self.submit,
                accept=self._config.accept,
                multiple=self._config.multiple,
            )
        return self._drop_zone

    async def submit(self, files: Iterable[FileLike]) -> List[UploadFile]:
        """
        Gate every file concurrently and start an upload for each one admitted.

        Returns the admitted entries as they were at admission; uploads keep
        running in the background (see ``wait``).
        """
        if self._transport is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")

        raws = to_raw_files(files)
        admitted = await asyncio.gather(*(self._admit(raw) for raw in raws))
        entries = [entry for entry in admitted if entry is not None]
        logger.info(f"Admitted {len(entries)}/{len(raws)} file(s)")
        return entries

    async def _admit(self, raw: RawFile) -> Optional[UploadFile]:
        if not await self._gate.admit(raw):
            return None

        entry = UploadFile.admit(self._next_uid(), raw)
        self._commit(lambda tasks: (entry,) + tuple(tasks))

        handle = UploadHandle(entry.uid)
        self._handles[entry.uid] = handle
        task = UploadTask(entry, self._transport, self._config, handle, self._record, self._events)
        handle.task = asyncio.create_task(task.run(), name=f"upload:{entry.name}")
        handle.task.add_done_callback(lambda t, uid=entry.uid: self._on_task_done(uid, t))
        return entry

    def _next_uid(self) -> str:
        while True:
            uid = self._uid_factory()
            if uid not in self._handles and self.get(uid) is None:
                return uid
            logger.debug(f"uid collision on {uid}, regenerating")

    def _on_task_done(self, uid: str, task: asyncio.Task) -> None:
        self._handles.pop(uid, None)
        if task.cancelled():
            logger.debug(f"Upload task {uid} cancelled")
        elif task.exception() is not None:
            logger.error(f"Upload task {uid} crashed: {task.exception()}")

    async def _gather_pending(self) -> None:
        while True:
            pending = [h.task for h in self._handles.values() if not h.done]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def wait(self) -> List[UploadFile]:
        """Wait for every running upload, then return the list."""
        await self._gather_pending()
        return self.file_list
