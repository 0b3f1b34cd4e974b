"""Fixed-size worker pool for backend calls.

Hides how LLM calls are moved off the caller's thread. Every adapter call
that performs I/O is submitted here; results and failures come back through
a Future or through callbacks.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, TypeVar

from ..errors import WorkerPoolShutdownError

T = TypeVar("T")

DEFAULT_WORKERS = 3
DEFAULT_GRACE = 5.0
FORCE_GRACE = 2.0


class WorkerPool:
    """Runs units of work on a small fixed set of daemon-like threads.

    Usage:
        with WorkerPool() as pool:
            pool.run_async(
                lambda: client.chat(history.messages(), text),
                on_result=show_answer,
                on_error=show_failure,
            )
    """

    def __init__(
        self,
        max_workers: int = DEFAULT_WORKERS,
        thread_name_prefix: str = "llm-worker",
        logger: logging.Logger | None = None
    ) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=thread_name_prefix,
        )
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._pending: set[Future] = set()
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def submit(self, fn: Callable[[], T]) -> "Future[T]":
        """Schedule work and return its Future.

        After shutdown the returned Future has already failed with
        WorkerPoolShutdownError; nothing is silently dropped.
        """
        with self._lock:
            if self._shutdown:
                failed: Future = Future()
                failed.set_exception(WorkerPoolShutdownError("Worker pool is shut down"))
                return failed
            future = self._executor.submit(self._call, fn)
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def run_async(
        self,
        fn: Callable[[], T],
        on_result: Callable[[T], None],
        on_error: Callable[[BaseException], None],
        dispatch: Callable[[Callable[[], None]], Any] | None = None
    ) -> "Future[T]":
        """Run work and report the outcome through callbacks.

        Args:
            fn: Work to run on a worker thread
            on_result: Receives the return value
            on_error: Receives any exception, including shutdown rejection
            dispatch: Marshals a callback onto the caller's own context
                (e.g. a UI event queue); callbacks run on the worker if None
        """
        future = self.submit(fn)

        def deliver(done: Future) -> None:
            if done.cancelled():
                return
            error = done.exception()

            def callback() -> None:
                if error is not None:
                    on_error(error)
                else:
                    on_result(done.result())

            if dispatch is None:
                callback()
            else:
                dispatch(callback)

        future.add_done_callback(deliver)
        return future

    def _call(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except Exception as e:
            self._log.error("Background task failed: %s", e)
            raise

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def shutdown(self, grace: float = DEFAULT_GRACE) -> None:
        """Stop accepting work, drain for ``grace`` seconds, then cancel the rest.

        Idempotent. Work already running when the grace period ends is left
        to finish on its own; queued work is cancelled.
        """
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            pending = set(self._pending)

        self._executor.shutdown(wait=False)
        _, not_done = wait(pending, timeout=grace)
        if not_done:
            self._log.warning("%d task(s) still running after %ss, cancelling", len(not_done), grace)
            self._executor.shutdown(wait=False, cancel_futures=True)
            _, still_running = wait(not_done, timeout=FORCE_GRACE)
            if still_running:
                self._log.error("Worker pool did not terminate cleanly")
        self._log.info("Worker pool shut down")

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
