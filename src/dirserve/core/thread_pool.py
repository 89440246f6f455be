"""
=============================================================================
WORKER THREAD POOL
=============================================================================

A bounded pool of worker threads fed from a bounded queue. The accept
loop submits one task per connection; a worker runs the whole keep-alive
loop for that connection.

    accept loop ──submit()──▶ [ task queue (max_queue) ] ──▶ Worker-0
                                                         ──▶ Worker-1
                                                         ──▶ ...
                                                         ──▶ Worker-N

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │ Situation                    │ Behaviour                            │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ Idle worker available        │ Task runs immediately                │
    │ All busy, below max_workers  │ One more worker is started           │
    │ All busy, at max_workers     │ Task waits in the queue              │
    │ Queue full                   │ submit() returns False (server: 503) │
    │ Task raises                  │ Logged; the worker keeps running     │
    │ Task waited past its timeout │ Dropped with a warning               │
    └──────────────────────────────┴──────────────────────────────────────┘

Directory listings and file reads block on disk I/O, which releases the
GIL, so threads give real concurrency here.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs)."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    timeout: Optional[float] = None
    submitted_at: float = field(default_factory=time.time)

    @property
    def is_stale(self) -> bool:
        """True if the task sat in the queue longer than its timeout."""
        return self.timeout is not None and time.time() - self.submitted_at > self.timeout


class Worker(threading.Thread):
    """Pulls tasks off the shared queue until it gets None or is shut down."""

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 60.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:  # poison pill
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            if task.is_stale:
                logger.warning(
                    f"Task timed out before execution "
                    f"(waited {start_time - task.submitted_at:.2f}s, timeout was {task.timeout}s)"
                )
                self.tasks_failed += 1
                return

            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s")

        except Exception as e:
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Bounded, growable pool of worker threads.

    Args:
        min_workers: Threads started by start().
        max_workers: Upper bound when scaling up under load.
        max_queue: Tasks that may wait before submit() starts failing.
        idle_timeout: How often idle workers re-check for shutdown.

    Usage:
        pool = ThreadPool(min_workers=2, max_workers=8)
        pool.start()
        pool.submit(handle, args=(conn,))
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        max_queue: int = 100,
        idle_timeout: float = 60.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue = max_queue
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=max_queue)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        timeout: Optional[float] = None,
        block: bool = False,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue a call for a worker.

        Args:
            func: The function to run.
            args: Positional arguments.
            kwargs: Keyword arguments.
            timeout: Drop the task if it waits longer than this.
            block: Wait for queue space instead of failing at once.
            queue_timeout: How long to wait when block is True.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        task = Task(func=func, args=args, kwargs=kwargs or {}, timeout=timeout)
        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            idle = sum(1 for w in self._workers if w.state == WorkerState.IDLE)
            if idle < self._task_queue.qsize():
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Args:
            wait: Let queued tasks drain first.
            timeout: Upper bound on the drain; None waits as long as it takes.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while not self._task_queue.empty():
                if deadline and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.1)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for _ in workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass  # workers also watch their shutdown event

        for worker in workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queued(self) -> int:
        return self._task_queue.qsize()
