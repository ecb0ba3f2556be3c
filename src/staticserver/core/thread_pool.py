"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Each client connection is served on a worker thread, so a slow download
does not hold up everybody else.

=============================================================================
WHY A POOL?
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──► submit(conn) ──► [ queue ] ──► Worker-0           │
    │                                        │    ──► Worker-1            │
    │                                        │    ──► ...                 │
    │                                        │    ──► Worker-N            │
    │                                        │                             │
    │                              full? submit() returns False            │
    │                              and the server answers 503              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    - Threads are created once and reused.
    - min_workers start with the pool; more are added while every worker
      is busy and work is waiting, up to max_workers.
    - The queue is bounded, so overload turns into fast 503s instead of
      unbounded memory growth.

Serving files is I/O bound (disk reads, socket writes), which releases
the GIL, so threads give real concurrency here.

=============================================================================
SHUTDOWN: POISON PILLS
=============================================================================

shutdown() puts one None per worker on the queue. A worker that takes a
None exits its loop. Tasks already queued ahead of the pills still run.

=============================================================================
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)

# (func, args, kwargs); None tells a worker to exit
Job = Tuple[Callable[..., Any], tuple, dict]


class Worker(threading.Thread):
    """Runs jobs from the shared queue until it takes a None."""

    def __init__(self, jobs: "queue.Queue[Optional[Job]]", worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.jobs = jobs
        self.worker_id = worker_id
        self.busy = False

    def run(self):
        while True:
            job = self.jobs.get()
            try:
                if job is None:
                    break
                self._run_job(*job)
            finally:
                self.jobs.task_done()
        logger.debug(f"{self.name} stopped")

    def _run_job(self, func: Callable[..., Any], args: tuple, kwargs: dict):
        self.busy = True
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception(f"{self.name}: job {getattr(func, '__name__', func)!r} failed")
        finally:
            self.busy = False


class ThreadPool:
    """
    Bounded pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()

        if not pool.submit(handle_connection, args=(conn,), block=False):
            reject(conn)                  # queue full

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
    ):
        if min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size

        self._jobs: "queue.Queue[Optional[Job]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()  # Guards _workers
        self._started = False
        self._stopping = False

    @property
    def worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    def start(self):
        """Start min_workers threads. Calling it twice is a no-op."""
        if self._started:
            return
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker_locked()
        self._stopping = False
        self._started = True
        logger.info(f"Thread pool started with {self.min_workers} workers")

    def _add_worker_locked(self) -> Worker:
        """Create and start a worker. Caller must hold self._lock."""
        worker = Worker(self._jobs, worker_id=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._started or self._stopping:
            raise RuntimeError("Thread pool is not running")

        try:
            self._jobs.put((func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            logger.warning(f"Job queue full ({self.max_queue_size}), rejecting")
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        with self._lock:
            if len(self._workers) >= self.max_workers or self._jobs.empty():
                return
            if all(worker.busy for worker in self._workers):
                self._add_worker_locked()
                logger.debug(f"All workers busy, grew pool to {len(self._workers)}")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Args:
            wait: Let queued jobs finish first.
            timeout: Upper bound on that wait, in seconds.
        """
        if not self._started:
            return
        self._stopping = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._jobs.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Thread pool shutdown timed out with jobs still running")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for _ in workers:
            try:
                self._jobs.put(None, block=False)
            except queue.Full:
                break
        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info(f"Thread pool stopped ({len(workers)} workers)")
