#!/usr/bin/env python3
"""
Background task dispatch for fire-and-forget side effects.

Match notifications, connection emails and deferred rematches are dispatched
by name. A failure inside a task is logged and never reaches the code that
dispatched it.

Backends:
- InlineTaskDispatcher: keeps tasks in memory until run_pending() (tests, CLI)
- ThreadTaskDispatcher: one daemon timer thread per task
- RQTaskDispatcher: Redis Queue; delayed tasks need a worker started with the scheduler

Usage:
    dispatcher = ThreadTaskDispatcher()
    dispatcher.register('retry_for_request', orchestrator.retry_for_request)
    dispatcher.dispatch('retry_for_request', request_id, delay_seconds=5)
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from redis import Redis
from rq import Queue, Retry

logger = logging.getLogger(__name__)


def run_task_safely(name: str, handler: Callable[..., Any], args: Tuple[Any, ...]) -> bool:
    """Run a task, logging instead of raising. Returns True on success."""
    try:
        handler(*args)
        return True
    except Exception as e:
        logger.error(f"Background task '{name}' failed: {e}", exc_info=True)
        return False


class TaskDispatcher(ABC):
    """Name-based registry of task handlers plus a dispatch strategy."""

    def __init__(self):
        self._handlers: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str, handler: Callable[..., Any]) -> None:
        self._handlers[name] = handler

    def has_handler(self, name: str) -> bool:
        return name in self._handlers

    def handler_for(self, name: str) -> Callable[..., Any]:
        handler = self._handlers.get(name)
        if handler is None:
            raise ValueError(f"No task handler registered for '{name}'. "
                             f"Available: {', '.join(sorted(self._handlers))}")
        return handler

    @abstractmethod
    def dispatch(self, name: str, *args: Any, delay_seconds: float = 0.0) -> None:
        """Schedule a task. Never raises."""
        pass


@dataclass
class PendingTask:
    name: str
    args: Tuple[Any, ...] = field(default_factory=tuple)
    delay_seconds: float = 0.0


class InlineTaskDispatcher(TaskDispatcher):
    """Queues tasks in memory; run_pending() executes them in dispatch order."""

    def __init__(self):
        super().__init__()
        self.pending: List[PendingTask] = []
        self.history: List[PendingTask] = []

    def dispatch(self, name: str, *args: Any, delay_seconds: float = 0.0) -> None:
        task = PendingTask(name=name, args=args, delay_seconds=delay_seconds)
        self.pending.append(task)
        self.history.append(task)
        logger.debug(f"Queued inline task '{name}' (delay {delay_seconds}s)")

    def run_pending(self) -> int:
        """Run queued tasks, including ones they dispatch. Delays are ignored."""
        ran = 0
        while self.pending:
            task = self.pending.pop(0)
            try:
                handler = self.handler_for(task.name)
            except ValueError as e:
                logger.warning(str(e))
                continue
            run_task_safely(task.name, handler, task.args)
            ran += 1
        return ran

    def dispatched_names(self) -> List[str]:
        return [task.name for task in self.history]


class ThreadTaskDispatcher(TaskDispatcher):
    """Runs each task on a daemon timer thread."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._timers: List[threading.Timer] = []

    def dispatch(self, name: str, *args: Any, delay_seconds: float = 0.0) -> None:
        try:
            handler = self.handler_for(name)
        except ValueError as e:
            logger.warning(str(e))
            return

        timer = threading.Timer(max(0.0, delay_seconds), self._run, args=(name, handler, args))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()
        logger.debug(f"Started thread task '{name}' (delay {delay_seconds}s)")

    @staticmethod
    def _run(name: str, handler: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        run_task_safely(name, handler, args)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for started tasks (shutdown, tests)."""
        with self._lock:
            timers = list(self._timers)
        for timer in timers:
            timer.join(timeout)


class RQTaskDispatcher(TaskDispatcher):
    """
    Enqueues tasks on a Redis Queue.

    The worker resolves the handler by name from its own application
    context, so only the task name and picklable arguments travel.
    """

    def __init__(self, redis_url: str = 'redis://localhost:6379/0', queue_name: str = 'rematch'):
        super().__init__()
        self.redis_url = redis_url
        self.redis_conn = Redis.from_url(redis_url)
        self.queue = Queue(queue_name, connection=self.redis_conn)

    def dispatch(self, name: str, *args: Any, delay_seconds: float = 0.0) -> None:
        if not self.has_handler(name):
            logger.warning(f"No task handler registered for '{name}'; not enqueued")
            return

        try:
            retry_policy = Retry(max=3, interval=[10, 30, 60])
            if delay_seconds > 0:
                job = self.queue.enqueue_in(
                    timedelta(seconds=delay_seconds),
                    execute_registered_task,
                    name,
                    *args,
                    retry=retry_policy
                )
            else:
                job = self.queue.enqueue(
                    execute_registered_task,
                    name,
                    *args,
                    retry=retry_policy
                )
            logger.info(f"Queued task '{name}' as job {job.id}")
        except Exception as e:
            logger.error(f"Failed to enqueue task '{name}': {e}")


# Worker task - must be at module level for RQ
def execute_registered_task(name: str, *args: Any) -> None:
    """Run a named task inside an RQ worker using the worker's app context."""
    from core.app_context import get_worker_context

    context = get_worker_context()
    handler = context.dispatcher.handler_for(name)
    logger.info(f"Running task '{name}'")
    handler(*args)


def build_dispatcher(backend: str, redis_url: Optional[str] = None, queue_name: str = 'rematch') -> TaskDispatcher:
    if backend == 'inline':
        return InlineTaskDispatcher()
    if backend == 'rq':
        return RQTaskDispatcher(redis_url or 'redis://localhost:6379/0', queue_name)
    return ThreadTaskDispatcher()
