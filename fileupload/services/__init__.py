"""Services for fileupload module."""
from .transport import HTTPMultipartTransport

__all__ = [
    "HTTPMultipartTransport",
]
