"""
Protocols (Interfaces) for Dependency Inversion.

Small, focused interfaces between the orchestrator and its collaborators.
"""
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from .models import RawFile, UploadConfig


# (bytes_loaded, bytes_total); total is None when the transport cannot tell.
ProgressCallback = Callable[[int, Optional[int]], Awaitable[None]]

BeforeUpload = Callable[[RawFile], Union[bool, Awaitable[bool]]]


@runtime_checkable
class ITransport(Protocol):
    """Interface for the multipart upload transport."""

    async def send(
        self,
        raw: RawFile,
        config: UploadConfig,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Any:
        """
        POST ``raw`` as multipart form data to ``config.action``.

        Returns the decoded response body; raises on transport failure or
        non-2xx status.
        """
        ...
