import pytest
from loguru import logger


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: float = 0.0):
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeTimer:
    def __init__(self):
        self.running = False
        self.start_calls = 0
        self.pause_calls = 0

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self.start_calls += 1

    def pause(self) -> None:
        if not self.running:
            return
        self.running = False
        self.pause_calls += 1

    def is_running(self) -> bool:
        return self.running


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(0)


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def log_records():
    """loguru records emitted during the test (caplog does not see loguru)."""
    records: list[dict] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
