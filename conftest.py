import pytest

from living_world.models import LorebookEntry
from living_world.notify import Notifier
from living_world.settings import SettingsStore
from living_world.storage import JsonStorage
from living_world.world import WorldBuilder


class FakeTimer:
    def __init__(self, scheduler: "FakeScheduler", delay: float, callback) -> None:
        self.scheduler = scheduler
        self.due = scheduler.now + delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers fire only when the test calls advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback) -> FakeTimer:
        timer = FakeTimer(self, delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in list(self.timers):
            if not timer.cancelled and timer.due <= self.now:
                timer.cancelled = True
                timer.callback()


class RecordingStorage:
    """In-memory storage collaborator that records every write."""

    def __init__(self, records: dict | None = None) -> None:
        self.records: dict[str, dict] = dict(records or {})
        self.writes: list[tuple[str, dict]] = []

    def read(self, key):
        return self.records.get(key)

    def write(self, key, record):
        self.writes.append((key, record))
        self.records[key] = record


class StubLorebooks:
    """Knowledge base serving fixed lorebooks."""

    def __init__(self, books: dict[str, dict[str, LorebookEntry]] | None = None) -> None:
        self.books = books or {}

    async def list_resources(self):
        return sorted(self.books)

    async def load_resource(self, name):
        return self.books[name]


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def json_storage(tmp_path):
    return JsonStorage(tmp_path / "data")


@pytest.fixture
def settings(storage, scheduler):
    return SettingsStore(storage, scheduler, debounce=1.0)


@pytest.fixture
def lorebooks():
    return StubLorebooks({
        "Eldoria": {
            "0": LorebookEntry(id="0", label="Characters", content="Aldric\n- Marta\n\nBrunolf\n"),
            "1": LorebookEntry(id="1", label="Entry 1", content="The old mill burned down."),
        },
    })


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def builder(settings, lorebooks, notifier):
    return WorldBuilder(settings, lorebooks, notifier=notifier)
