"""Orchestrator package - coordinates upload workflows."""
from .core import UploadOrchestrator
from .dropzone import DropZone
from .file_collector import FileCollector, FilePicker
from .gate import ValidationGate
from .progress import ProgressReporter, compute_percent
from .task import UploadHandle, UploadTask

__all__ = [
    "UploadOrchestrator",
    "DropZone",
    "FileCollector",
    "FilePicker",
    "ValidationGate",
    "ProgressReporter",
    "compute_percent",
    "UploadHandle",
    "UploadTask",
]
