"""Platform abstraction layer."""

from .files import atomic_write_text, file_md5
from .process import ProcessError, run

__all__ = [
    # files
    "atomic_write_text",
    "file_md5",
    # process
    "ProcessError",
    "run",
]
