import pytest


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Collects call_later requests so tests can fire them by hand."""

    def __init__(self):
        self.handles = []

    def __call__(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def live(self):
        return [handle for handle in self.handles if not handle.cancelled]

    def fire_due(self):
        for handle in self.live():
            handle.cancelled = True
            handle.callback()


@pytest.fixture
def scheduler():
    return FakeScheduler()
