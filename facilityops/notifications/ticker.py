import threading
from typing import Optional


class Ticker:
    """
    Fixed-interval ticker with a cancellation token.

    ``run(fn)`` calls ``fn`` immediately and then every ``interval`` seconds
    until ``stop()`` is called (or the shared ``stop_event`` is set). A
    ``max_ticks`` bound lets tests and one-shot runs end deterministically.
    """

    def __init__(self, interval: float, stop_event: Optional[threading.Event] = None):
        self.interval = interval
        self.stop_event = stop_event or threading.Event()
        self.ticks = 0

    def stop(self):
        self.stop_event.set()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def run(self, fn, max_ticks: Optional[int] = None):
        while not self.stop_event.is_set():
            fn()
            self.ticks += 1
            if max_ticks is not None and self.ticks >= max_ticks:
                break
            # Event.wait returns early as soon as stop() is called
            self.stop_event.wait(self.interval)
        return self.ticks
