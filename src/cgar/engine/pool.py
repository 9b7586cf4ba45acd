"""
Executor whose workers are daemon threads.

ThreadPoolExecutor joins its workers at interpreter exit, so one read
stuck in the kernel would keep a timed-out run alive forever. Workers
here are daemons: once the coordinator gives up on them, the process
can exit without waiting.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import Executor, Future
from typing import List

_STOP = None


class DaemonPool(Executor):

    def __init__(self, max_workers: int, thread_name_prefix: str = "cgar-pool"):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._shutdown = False
        self._threads: List[threading.Thread] = []
        for i in range(max_workers):
            t = threading.Thread(target=self._worker, name=f"{thread_name_prefix}-{i}", daemon=True)
            t.start()
            self._threads.append(t)

    def submit(self, fn, *args, **kwargs) -> Future:
        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new futures after shutdown")
            future: Future = Future()
            self._queue.put((future, fn, args, kwargs))
            return future

    def _worker(self):
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            future, fn, args, kwargs = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(result)

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False):
        with self._lock:
            self._shutdown = True
            if cancel_futures:
                while True:
                    try:
                        item = self._queue.get_nowait()
                    except queue.Empty:
                        break
                    if item is not _STOP:
                        item[0].cancel()
            for _ in self._threads:
                self._queue.put(_STOP)

        if wait:
            for t in self._threads:
                t.join()
