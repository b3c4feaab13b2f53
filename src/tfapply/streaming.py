"""
Concurrent capture of terraform's stdout and stderr.

Two daemon threads drain OS pipes line by line. Every line is forwarded to the
log sink; stderr lines are also kept in an ErrorBuffer so a failed phase can
report what terraform printed before it exited.
"""

from __future__ import annotations

import contextvars
import os
import threading
from types import TracebackType
from typing import IO, Any, BinaryIO

import structlog

logger = structlog.get_logger()


class ErrorBuffer:
    """Append-only, thread-safe accumulator of diagnostic lines."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data = bytearray()

    def append(self, line: bytes) -> None:
        with self._lock:
            self._data += line
            if not line.endswith(b"\n"):
                self._data += b"\n"

    def getvalue(self) -> bytes:
        with self._lock:
            return bytes(self._data)

    def text(self) -> str:
        return self.getvalue().decode("utf-8", errors="replace")

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class LogStreamer:
    """
    Drains the two output channels of an execution client.

    ``start()`` returns the write ends to hand to the client. ``close()``
    closes them and waits a bounded time for the readers to reach EOF.
    Setting the cancellation event makes the readers stop at the next line.
    """

    def __init__(
        self,
        sink: Any | None = None,
        error_buffer: ErrorBuffer | None = None,
        cancel_event: threading.Event | None = None,
        drain_timeout: float = 5.0,
    ) -> None:
        self._sink = sink if sink is not None else logger
        self.error_buffer = error_buffer if error_buffer is not None else ErrorBuffer()
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self._drain_timeout = drain_timeout
        self._writers: list[IO[bytes]] = []
        self._threads: list[threading.Thread] = []

    def start(self) -> tuple[IO[bytes], IO[bytes]]:
        if self._threads:
            raise RuntimeError("LogStreamer already started")

        out_read, out_write = os.pipe()
        err_read, err_write = os.pipe()
        stdout = os.fdopen(out_write, "wb")
        stderr = os.fdopen(err_write, "wb")
        self._writers = [stdout, stderr]

        self._threads = [
            threading.Thread(
                target=contextvars.copy_context().run,
                args=(self._drain, os.fdopen(out_read, "rb"), "stdout", False),
                name="tfapply-stdout",
                daemon=True,
            ),
            threading.Thread(
                target=contextvars.copy_context().run,
                args=(self._drain, os.fdopen(err_read, "rb"), "stderr", True),
                name="tfapply-stderr",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()

        return stdout, stderr

    def _drain(self, reader: BinaryIO, stream: str, capture: bool) -> None:
        with reader:
            for raw in reader:
                if self.cancel_event.is_set():
                    return
                line = raw.rstrip(b"\r\n").decode("utf-8", errors="replace")
                self._sink.info("terraform_output", stream=stream, line=line)
                if capture:
                    self.error_buffer.append(raw)

    def close(self, timeout: float | None = None) -> None:
        """Close the write ends and give the readers a chance to finish."""
        for writer in self._writers:
            if writer.closed:
                continue
            try:
                writer.close()
            except OSError as exc:
                logger.debug("stream_close_failed", error=str(exc))

        timeout = self._drain_timeout if timeout is None else timeout
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("stream_drain_timeout", thread=thread.name)

    def stop(self) -> None:
        self.cancel_event.set()

    def diagnostics(self) -> str:
        return self.error_buffer.text()

    def __enter__(self) -> LogStreamer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            self.close()
        finally:
            self.stop()
