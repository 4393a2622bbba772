import threading


class ThreadControl():
    """Stop flag shared between a plugin and the thread it owns."""
    def __init__(self):
        self._event = threading.Event()

    @property
    def stop(self) -> bool:
        return self._event.is_set()

    @stop.setter
    def stop(self, value : bool):
        if value:
            self._event.set()
        else:
            self._event.clear()

    # Returns True when stop was requested during the wait
    def Wait(self, seconds : float) -> bool:
        return self._event.wait(seconds)
