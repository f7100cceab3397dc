"""HTTP uploader and upload dispatchers.

The uploader owns retry, session reuse, and timeout. Dispatchers run the
upload coroutine without the caller awaiting it.

Note: fire-and-forget delivery may silently drop a document after the
uploader exhausts its attempts. Provide an ``on_failure`` callback for
production use to detect lost sessions.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

logger = logging.getLogger(__name__)

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BASE_DELAY = 1.0
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=10)


@dataclass(frozen=True)
class UploadFailure:
    """A document the collector never accepted."""

    url: str
    body: bytes
    attempts: int
    status: int | None
    error: Exception | None

    def describe(self) -> str:
        if self.status is not None:
            return f"HTTP {self.status}"
        return str(self.error) or type(self.error).__name__


class HTTPUploader:
    """Uploader that POSTs signed documents with aiohttp.

    One client session is kept per event loop. A session left behind on
    another loop is closed on that loop when it is still running.

    Args:
        max_retries: Total POST attempts per document.
        base_delay: Delay before the second attempt, doubled for each
            further attempt.
        on_failure: Optional async callback receiving an
            :class:`UploadFailure` once every attempt has failed.
    """

    def __init__(
        self,
        *,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        base_delay: float = _DEFAULT_BASE_DELAY,
        timeout: aiohttp.ClientTimeout | None = None,
        on_failure: Callable[[UploadFailure], Awaitable[None]] | None = None,
    ) -> None:
        self._attempts = max(1, max_retries)
        self._base_delay = base_delay
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._on_failure = on_failure
        self._session: aiohttp.ClientSession | None = None
        self._session_loop: asyncio.AbstractEventLoop | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        loop = asyncio.get_running_loop()
        if self._session is not None and self._session_loop is not loop:
            self._release_foreign_session()
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._session_loop = loop
        return self._session

    def _release_foreign_session(self) -> None:
        session, owner = self._session, self._session_loop
        self._session = None
        self._session_loop = None
        if session is None or session.closed:
            return
        if owner is not None and owner.is_running():
            asyncio.run_coroutine_threadsafe(session.close(), owner)
        else:
            logger.warning("Discarding HTTP session bound to a stopped event loop")

    def _delay(self, attempt: int) -> float:
        return self._base_delay * (2 ** (attempt - 1))

    async def post(self, url: str, headers: dict[str, str], body: bytes) -> None:
        """POST *body* to *url*, retrying client errors and error statuses."""
        session = await self._get_session()
        status: int | None = None
        error: Exception | None = None

        for attempt in range(1, self._attempts + 1):
            status, error = None, None
            try:
                async with session.post(url, data=body, headers=headers) as resp:
                    status = resp.status
                    resp.raise_for_status()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                error = exc
            else:
                logger.info("Uploaded %d bytes to %s (HTTP %d)", len(body), url, status)
                return

            if attempt < self._attempts:
                delay = self._delay(attempt)
                logger.warning(
                    "Upload to %s failed on attempt %d of %d (%s); next try in %.1fs",
                    url,
                    attempt,
                    self._attempts,
                    status if status is not None else error,
                    delay,
                )
                await asyncio.sleep(delay)

        failure = UploadFailure(url=url, body=body, attempts=self._attempts, status=status, error=error)
        logger.error("Upload to %s abandoned after %d attempts: %s", url, failure.attempts, failure.describe())
        if self._on_failure is not None:
            try:
                await self._on_failure(failure)
            except Exception:
                logger.exception("Upload failure callback raised")

    async def close(self) -> None:
        """Close the client session of the current loop."""
        session = self._session
        self._session = None
        self._session_loop = None
        if session is not None and not session.closed:
            await session.close()


class Dispatcher(Protocol):
    """Protocol for executors that run an upload coroutine."""

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        cancel: threading.Event | None = None,
    ) -> concurrent.futures.Future:
        """Schedule *coro*; skip it if *cancel* is set before it starts."""
        ...

    def shutdown(self, timeout: float | None = 10.0) -> None:
        """Release the event loop used for uploads."""
        ...


async def _guarded(coro: Coroutine[Any, Any, Any], cancel: threading.Event | None) -> Any:
    if cancel is not None and cancel.is_set():
        coro.close()
        logger.info("Upload cancelled before it started")
        return None
    return await coro


async def _cancel_remaining() -> None:
    current = asyncio.current_task()
    tasks = [t for t in asyncio.all_tasks() if t is not current]
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class BackgroundDispatcher:
    """Runs coroutines on a private event loop in a daemon thread.

    The loop thread is started on first use. ``shutdown()`` waits for
    pending uploads (up to *timeout*), cancels the rest and stops the loop.
    """

    def __init__(self, name: str = "arctic-analytics-upload") -> None:
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._pending: set[concurrent.futures.Future] = set()
        self._lock = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name=self._name, daemon=True)
                thread.start()
                self._loop = loop
                self._thread = thread
            return self._loop

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        cancel: threading.Event | None = None,
    ) -> concurrent.futures.Future:
        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(_guarded(coro, cancel), loop)
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)
        return future

    def shutdown(self, timeout: float | None = 10.0) -> None:
        """Wait for pending uploads, cancel overdue ones, then stop the loop thread."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None:
            return

        pending = list(self._pending)
        if pending:
            _, not_done = concurrent.futures.wait(pending, timeout=timeout)
            if not_done:
                logger.warning("Cancelling %d upload(s) still pending at shutdown", len(not_done))

        # Cancelled tasks need loop iterations to unwind before the loop stops
        try:
            asyncio.run_coroutine_threadsafe(_cancel_remaining(), loop).result(timeout)
        except concurrent.futures.TimeoutError:
            logger.warning("Pending uploads did not finish cancelling within %.1fs", timeout or 0.0)

        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Upload thread did not stop within %.1fs", timeout or 0.0)
                return
        loop.close()


class InlineDispatcher:
    """Runs each coroutine to completion on the calling thread.

    All submissions share one event loop, so an uploader keeps a single
    client session across uploads. Call ``shutdown()`` (or use the
    dispatcher as a context manager) to close that loop. Must not be used
    from inside a running event loop.
    """

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        cancel: threading.Event | None = None,
    ) -> concurrent.futures.Future:
        future: concurrent.futures.Future = concurrent.futures.Future()
        future.set_running_or_notify_cancel()
        guarded = _guarded(coro, cancel)
        try:
            future.set_result(self._ensure_loop().run_until_complete(guarded))
        except Exception as exc:
            # no-op for coroutines that already ran
            guarded.close()
            coro.close()
            future.set_exception(exc)
        return future

    def shutdown(self, timeout: float | None = 10.0) -> None:
        """Cancel leftover tasks and close the shared loop."""
        loop, self._loop = self._loop, None
        if loop is None or loop.is_closed():
            return
        try:
            loop.run_until_complete(_cancel_remaining())
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()

    def __enter__(self) -> InlineDispatcher:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()
