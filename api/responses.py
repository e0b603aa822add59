"""
Workbook download responses.

Two ways to send a workbook as an xlsx attachment:

- workbook_response(): serialize fully in memory, then send.
- stream_workbook(): serialize on a producer thread into a bounded pipe
  while the response body is read from the other end. A failure on the
  producer side is re-raised in the consumer, so a broken export aborts
  the response instead of sending a truncated file.
"""

import logging
import queue
import threading
from typing import Iterator, Optional

from fastapi.responses import Response, StreamingResponse

from api.config import settings
from services.workbook import CONTENT_TYPE, Workbook

logger = logging.getLogger(__name__)


def download_headers(filename: str) -> dict:
    """Headers prompting the client to save the body as ``filename``."""
    return {'Content-Disposition': f'attachment; filename={filename}'}


class _Failure:
    def __init__(self, error: BaseException):
        self.error = error


_EOF = object()


class WorkbookPipe:
    """
    Bounded in-memory pipe of byte chunks.

    The write side is a minimal non-seekable binary file (write/flush) that
    openpyxl can save into. The read side is an iterator of chunks. If the
    reader goes away early, further writes fail with BrokenPipeError so the
    producer thread does not block forever.
    """

    def __init__(self, chunk_size: int = 64 * 1024, max_chunks: int = 16):
        self.chunk_size = chunk_size
        self._queue: queue.Queue = queue.Queue(maxsize=max_chunks)
        self._buffer = bytearray()
        self._abandoned = threading.Event()
        self._closed = False

    # Write side

    def _put(self, item) -> None:
        while True:
            if self._abandoned.is_set():
                raise BrokenPipeError("Reader closed the workbook pipe")
            try:
                self._queue.put(item, timeout=0.1)
                return
            except queue.Full:
                continue

    def write(self, data) -> int:
        if self._closed:
            raise ValueError("write to closed workbook pipe")
        self._buffer.extend(data)
        while len(self._buffer) >= self.chunk_size:
            chunk = bytes(self._buffer[:self.chunk_size])
            del self._buffer[:self.chunk_size]
            self._put(chunk)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        """Finish writing; the reader sees end of stream after the last chunk."""
        if self._closed:
            return
        self._closed = True
        if self._abandoned.is_set():
            return
        if self._buffer:
            self._put(bytes(self._buffer))
            self._buffer.clear()
        self._put(_EOF)

    def close_with_error(self, error: BaseException) -> None:
        """Finish writing with a failure the reader will re-raise."""
        self._closed = True
        self._buffer.clear()
        if not self._abandoned.is_set():
            self._put(_Failure(error))

    # Read side

    def __iter__(self) -> Iterator[bytes]:
        try:
            while True:
                item = self._queue.get()
                if item is _EOF:
                    return
                if isinstance(item, _Failure):
                    raise item.error
                yield item
        finally:
            self._abandoned.set()


def _produce(workbook: Workbook, pipe: WorkbookPipe, close_workbook: bool) -> None:
    try:
        # Release the workbook before the reader can observe end of stream
        try:
            workbook.write(pipe)
        finally:
            if close_workbook:
                workbook.close()
    except BrokenPipeError:
        logger.warning("Workbook stream abandoned by client")
    except Exception as e:
        logger.error(f"Workbook serialization failed: {e}", exc_info=True)
        pipe.close_with_error(e)
    else:
        pipe.close()


def open_pipe(workbook: Workbook, chunk_size: Optional[int] = None,
              max_chunks: Optional[int] = None, close_workbook: bool = True) -> WorkbookPipe:
    """Start serializing ``workbook`` on a producer thread and return the read end."""
    pipe = WorkbookPipe(
        chunk_size=chunk_size or settings.STREAM_CHUNK_SIZE,
        max_chunks=max_chunks or settings.STREAM_QUEUE_SIZE,
    )
    producer = threading.Thread(
        target=_produce,
        args=(workbook, pipe, close_workbook),
        name='workbook-producer',
        daemon=True,
    )
    producer.start()
    return pipe


def workbook_response(workbook: Workbook, filename: str, close_workbook: bool = True) -> Response:
    """Buffered xlsx attachment response."""
    try:
        content = workbook.to_bytes()
    finally:
        if close_workbook:
            workbook.close()
    logger.info(f"Sending workbook {filename} ({len(content)} bytes)")
    return Response(content=content, media_type=CONTENT_TYPE, headers=download_headers(filename))


def stream_workbook(workbook: Workbook, filename: str, close_workbook: bool = True) -> StreamingResponse:
    """Streaming xlsx attachment response."""
    logger.info(f"Streaming workbook {filename}")
    return StreamingResponse(
        open_pipe(workbook, close_workbook=close_workbook),
        media_type=CONTENT_TYPE,
        headers=download_headers(filename),
    )
