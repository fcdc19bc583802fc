"""
osmindex Output Sinks
=====================
Reliable writes of a byte buffer to a file descriptor or binary file.

"Reliable" means: either every byte is accepted or WriteFailureError is
raised. Partial writes are retried from where they stopped, EINTR is
retried, anything else aborts the whole write.
"""

import errno
import os
from typing import Any, Union

# Single os.write() calls are capped; some platforms reject huge counts.
MAX_WRITE = 100 * 1024 * 1024

Sink = Union[int, Any]


class WriteFailureError(OSError):
    """Raised when a sink cannot accept the complete buffer."""
    pass


def reliable_write(fd: int, data: bytes) -> None:
    """
    Write all of data to an open file descriptor.
    Loops over partial writes; raises WriteFailureError on error.
    """
    view = memoryview(data)
    offset = 0
    while offset < len(view):
        chunk = view[offset:offset + MAX_WRITE]
        try:
            written = os.write(fd, chunk)
        except InterruptedError:
            continue
        except OSError as e:
            raise WriteFailureError(
                e.errno, f"Write to fd {fd} failed after {offset} bytes: {e.strerror}"
            ) from e
        if written == 0:
            raise WriteFailureError(
                errno.EIO, f"Write to fd {fd} accepted no bytes after {offset} bytes"
            )
        offset += written


def _write_to_file(f: Any, data: bytes) -> None:
    """Write all of data to a file-like object with write()."""
    view = memoryview(data)
    offset = 0
    try:
        while offset < len(view):
            written = f.write(view[offset:])
            # Unbuffered raw files may return None (would block) or a short count
            if written is None or written == 0:
                raise WriteFailureError(
                    errno.EIO, f"Sink accepted no bytes after {offset} bytes"
                )
            offset += written
        flush = getattr(f, "flush", None)
        if flush is not None:
            flush()
    except WriteFailureError:
        raise
    except OSError as e:
        raise WriteFailureError(
            e.errno, f"Write to sink failed after {offset} bytes: {e.strerror or e}"
        ) from e


def write_to_sink(sink: Sink, data: bytes) -> None:
    """
    Dispatch a reliable write to an fd (int) or a binary file object.
    """
    if isinstance(sink, bool):
        raise TypeError("Sink must be a file descriptor or a binary file object")
    if isinstance(sink, int):
        reliable_write(sink, data)
    elif hasattr(sink, "write"):
        _write_to_file(sink, data)
    else:
        raise TypeError(
            f"Sink must be a file descriptor or a binary file object, "
            f"got {type(sink).__name__}"
        )
