from __future__ import annotations

import queue
import threading
from typing import Callable

from edgeconsent.core.events.models import BaseEvent


class SubscriberWorker:
    """
    One thread per subscriber. Events are handled strictly in submit order.
    """

    def __init__(self, *, name: str, handler: Callable[[BaseEvent], None]):
        self.name = name
        self._handler = handler
        self._q: "queue.Queue[BaseEvent]" = queue.Queue()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def submit(self, ev: BaseEvent) -> None:
        self._q.put_nowait(ev)

    def idle(self) -> bool:
        return self._q.unfinished_tasks == 0

    def stop(self, grace_seconds: float = 1.0) -> None:
        self._stop.set()
        self._thread.join(timeout=max(0.1, float(grace_seconds)))

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                ev = self._q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self._handler(ev)
            finally:
                self._q.task_done()
