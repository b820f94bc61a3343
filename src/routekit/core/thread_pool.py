"""
Worker thread pool for connection handling.

Connections are queued as tasks and picked up by worker threads. The pool
starts with ``min_workers`` threads and adds one whenever every worker is
busy and tasks are waiting, up to ``max_workers``. The queue is bounded;
submit() returns False when it is full so the caller can answer 503.

Shutdown puts one ``None`` per worker on the queue. A worker that takes
``None`` exits.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred call. ``timeout`` bounds how long it may wait in the queue;
    a task that waited longer runs ``on_reject`` instead of ``func``.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None
    on_reject: Optional[Callable[[], Any]] = None
    submitted_at: float = field(default_factory=time.monotonic)

    def is_stale(self, now: float) -> bool:
        return self.timeout is not None and now - self.submitted_at > self.timeout


class Worker(threading.Thread):
    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"routekit-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

    def run(self) -> None:
        logger.debug(f"Worker {self.worker_id} started")
        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task) -> None:
        self.state = WorkerState.BUSY
        start = time.monotonic()
        try:
            if task.is_stale(start):
                logger.warning(
                    f"Task dropped after waiting {start - task.submitted_at:.2f}s "
                    f"(timeout {task.timeout}s)"
                )
                if task.on_reject is not None:
                    task.on_reject()
                return

            task.func(*task.args, **task.kwargs)
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.monotonic() - start:.3f}s"
            )
        except Exception as e:
            # A failing task must not take the worker down with it
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Bounded pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(handle, args=(client_socket,), block=False):
            reject(client_socket)
        pool.shutdown()
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, max_queue: int = 100):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError("Need 1 <= min_workers <= max_workers")
        self.min_workers = min_workers
        self.max_workers = max_workers
        self._queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=max_queue)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False

    def start(self) -> None:
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> None:
        # Caller holds self._lock
        worker = Worker(self._queue, len(self._workers))
        self._workers.append(worker)
        worker.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        block: bool = True,
        on_reject: Optional[Callable[[], Any]] = None,
    ) -> bool:
        """
        Queue a call.

        Args:
            timeout: Longest the call may wait in the queue.
            on_reject: Run instead of ``func`` once ``timeout`` has passed.

        Returns:
            False if the queue is full (only possible with ``block=False``).

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._queue.put(Task(func, args, kwargs or {}, timeout, on_reject), block=block)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self) -> None:
        with self._lock:
            if len(self._workers) >= self.max_workers or self._queue.empty():
                return
            if all(w.state is WorkerState.BUSY for w in self._workers):
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

    def shutdown(self, wait: bool = True) -> None:
        """Stop every worker; with ``wait`` queued tasks run first."""
        if not self._started:
            return
        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        with self._lock:
            workers = list(self._workers)
        for _ in workers:
            self._queue.put(None)
        if wait:
            for worker in workers:
                worker.join(timeout=5.0)

        self._workers.clear()
        self._started = False
        self._shutting_down = False
        logger.info("Thread pool shutdown complete")
