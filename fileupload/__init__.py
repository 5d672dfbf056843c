"""
fileupload - parallel multipart file uploads with per-file state.

Each picked or dropped file goes through an optional admission gate and then
its own upload task (ready -> uploading -> success | error). The orchestrator
keeps the newest-first list of tasks and reports progress and results
through callbacks.

Usage:
    from fileupload import UploadOrchestrator, UploadConfig

    config = UploadConfig(action="http://localhost:3333/upload")

    async with UploadOrchestrator(config, before_upload=lambda f: f.size > 0) as uploader:
        uploader.on_progress(lambda percent, raw: print(raw.name, percent))
        uploader.on_success(lambda body, raw: print("done", raw.name, body))
        uploader.on_error(lambda err, raw: print("failed", raw.name, err))

        # File picker
        await uploader.select(["a.txt", "b.txt"])

        # Drag and drop
        zone = uploader.drop_zone()
        zone.drag_over()
        await zone.drop("file:///tmp/c.txt\r\n")

        files = await uploader.wait()
"""
from .orchestrator import UploadOrchestrator, DropZone, FilePicker, UploadHandle
from .models import RawFile, UploadConfig, UploadFile, UploadStatus
from .services import HTTPMultipartTransport

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "DropZone",
    "FilePicker",
    "UploadHandle",
    # Models
    "RawFile",
    "UploadConfig",
    "UploadFile",
    "UploadStatus",
    # Services
    "HTTPMultipartTransport",
]
