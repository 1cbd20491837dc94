"""
=============================================================================
THREAD POOL: ONE UNIT OF WORK PER CONNECTION
=============================================================================

Every accepted connection becomes one task: read the request, route it,
run the handler, write the response, close. Tasks run concurrently on
worker threads and share nothing but the read-only configuration and the
filesystem.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         THREAD POOL                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop                                                        │
    │       │ submit(handle, conn)                                         │
    │       ▼                                                              │
    │   ┌───────────────────────────────┐                                  │
    │   │ Task Queue  [T5] [T4] [T3]    │   queue.Queue, thread-safe       │
    │   └───────────────┬───────────────┘                                  │
    │                   │ get()                                            │
    │        ┌──────────┼──────────┬──────────┐                            │
    │        ▼          ▼          ▼          ▼                            │
    │   ┌────────┐ ┌────────┐ ┌────────┐ ┌────────┐                        │
    │   │Worker 0│ │Worker 1│ │Worker 2│ │Worker 3│  ... grows on demand   │
    │   │  T1    │ │  T2    │ │ (idle) │ │ (idle) │                        │
    │   └────────┘ └────────┘ └────────┘ └────────┘                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SIZING
=============================================================================

The pool starts ``min_workers`` threads. On every submit it compares the
number of outstanding tasks (queued plus running) with the number of
workers, and adds a worker when there are more tasks than threads:

    max_workers=None   unbounded: every connection gets a thread right
                       away, like a thread-per-connection server
    max_workers=N      at most N threads; extra connections wait in the
                       queue until a worker frees up

A worker above min_workers that sits idle for ``idle_timeout`` seconds
retires, so the pool shrinks back after a burst of connections:

    burst of 50 connections    ──►  50 workers
    quiet for idle_timeout     ──►  min_workers workers again

A worker only retires while the remaining workers can still take every
outstanding task, so a queued task is never left without a thread.

=============================================================================
INTERVIEW QUESTIONS ABOUT THREAD POOLS
=============================================================================

Q: "Why not just start a thread per connection?"
A: "With max_workers=None that is almost what happens, except threads are
   reused once they finish. A cap turns the same code into a classic
   fixed pool that queues under load instead of exhausting memory."

Q: "What is a poison pill?"
A: "A sentinel (None here) put on the queue once per worker at shutdown.
   A worker that takes it exits its loop. Because the pills go in after
   the real tasks, queued work is finished first."

Q: "What about the GIL?"
A: "Workers spend their time blocked in socket and file I/O, and the GIL
   is released during I/O, so threads do overlap here."

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
    """
    Worker thread states.

    Used for monitoring the pool.
    """
    IDLE = "idle"        # Waiting for task
    BUSY = "busy"        # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call this with these arguments later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Worker Loop                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Wait up to idle_timeout for a task                             │
    │   2. Nothing came? ask the pool whether to retire                   │
    │   3. None? exit (poison pill)                                       │
    │   4. Run the task, log anything it raises                           │
    │   5. task_done() and report the outcome to the pool                 │
    │   6. Loop                                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        on_task_done: Optional[Callable[[bool], None]] = None,
        on_idle: Optional[Callable[["Worker"], bool]] = None,
        idle_timeout: float = 60.0
    ):
        """
        Initialize the worker.

        Args:
            task_queue: Queue to pull tasks from.
            worker_id: Unique identifier for this worker (for logging).
            on_task_done: Called after every task with True on success,
                False if the task raised.
            on_idle: Called after idle_timeout seconds without a task;
                returning True retires the worker.
            idle_timeout: Seconds to wait for a task before calling on_idle.
        """
        # daemon=True: a stuck connection never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.on_task_done = on_task_done
        self.on_idle = on_idle
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

    def run(self):
        """Main worker loop; runs until shutdown, a poison pill or retirement."""
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                if self.on_idle is not None and self.on_idle(self):
                    logger.debug(
                        f"Worker {self.worker_id} retiring after {self.idle_timeout}s idle"
                    )
                    break
                continue

            if task is None:
                self.task_queue.task_done()
                break

            succeeded = False
            try:
                succeeded = self._execute_task(task)
            finally:
                self.task_queue.task_done()
                if self.on_task_done is not None:
                    self.on_task_done(succeeded)

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task) -> bool:
        """
        Execute a single task.

        Exceptions are logged, never re-raised: one failing connection
        must not take its worker down with it.

        Returns:
            True if the task returned normally.
        """
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)

            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            return True

        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            return False

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop."""
        self._shutdown.set()


class ThreadPool:
    """
    Thread pool for connection tasks.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=None)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        pool.shutdown(timeout=5.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: Optional[int] = None,
        idle_timeout: float = 60.0
    ):
        """
        Initialize the thread pool.

        Args:
            min_workers: Workers created at startup and never retired.
            max_workers: Upper bound on workers; None means no bound.
            idle_timeout: Seconds a worker above min_workers may sit idle
                before it retires.
        """
        if max_workers is not None and max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout

        # Unbounded: submit() never blocks the accept loop
        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue()

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _workers and the counters
        self._outstanding = 0          # Tasks queued or running
        self._completed = 0
        self._failed = 0
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start the pool with min_workers threads."""
        if self._started:
            return

        logger.info(
            f"Starting thread pool with {self.min_workers} workers "
            f"(max: {self.max_workers if self.max_workers is not None else 'unbounded'})"
        )

        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True

    def _add_worker(self) -> Worker:
        """Create and start one worker. Caller holds the lock."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            on_task_done=self._task_finished,
            on_idle=self._retire_if_surplus,
            idle_timeout=self.idle_timeout
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def _can_grow(self) -> bool:
        return self.max_workers is None or len(self._workers) < self.max_workers

    def _task_finished(self, succeeded: bool):
        with self._lock:
            self._outstanding -= 1
            if succeeded:
                self._completed += 1
            else:
                self._failed += 1

    def _retire_if_surplus(self, worker: Worker) -> bool:
        """
        Decide whether an idle worker may exit.

        Only workers above min_workers retire, and only while the rest
        can still take every outstanding task.
        """
        with self._lock:
            if self._shutdown or worker not in self._workers:
                return False
            if len(self._workers) <= self.min_workers:
                return False
            if self._outstanding >= len(self._workers):
                return False

            self._workers.remove(worker)
            logger.debug(f"Scaling down: {len(self._workers) + 1} -> {len(self._workers)} workers")
            return True

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None
    ) -> None:
        """
        Queue a task and make sure a worker will pick it up.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        with self._lock:
            self._outstanding += 1

            # ─────────────────────────────────────────────────────────────
            # SCALE UP
            # ─────────────────────────────────────────────────────────────
            # More tasks than threads means no worker is free for this one
            if self._outstanding > len(self._workers) and self._can_grow():
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

        self._task_queue.put(task)

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Shut the pool down.

        Args:
            wait: Let queued and running tasks finish first.
            timeout: Upper bound on the wait, in seconds. None waits for
                every task.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        with self._lock:
            self._shutdown = True

        if wait:
            # ─────────────────────────────────────────────────────────────
            # WAIT FOR OUTSTANDING TASKS
            # ─────────────────────────────────────────────────────────────
            deadline = time.time() + timeout if timeout is not None else None
            while self.outstanding_tasks > 0:
                if deadline is not None and time.time() > deadline:
                    logger.warning(
                        f"Shutdown timeout, abandoning {self.outstanding_tasks} tasks"
                    )
                    break
                time.sleep(0.05)

        stats = self.stats
        logger.debug(f"Thread pool state at shutdown: {stats}")

        # ─────────────────────────────────────────────────────────────────
        # POISON PILLS
        # ─────────────────────────────────────────────────────────────────
        with self._lock:
            workers = list(self._workers)

        for _ in workers:
            self._task_queue.put(None)

        for worker in workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()

        self._started = False
        logger.info(
            f"Thread pool shutdown complete: {stats['tasks']['completed']} tasks "
            f"completed, {stats['tasks']['failed']} failed"
        )

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        """Number of worker threads currently owned by the pool."""
        with self._lock:
            return len(self._workers)

    @property
    def outstanding_tasks(self) -> int:
        """Tasks submitted but not yet finished."""
        with self._lock:
            return self._outstanding

    @property
    def stats(self) -> dict:
        """Worker and task counts, logged at shutdown."""
        with self._lock:
            states = [w.state for w in self._workers]
            return {
                "workers": {
                    "total": len(states),
                    "busy": states.count(WorkerState.BUSY),
                    "idle": states.count(WorkerState.IDLE),
                },
                "tasks": {
                    "outstanding": self._outstanding,
                    "completed": self._completed,
                    "failed": self._failed,
                },
            }
