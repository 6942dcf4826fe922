import pytest

from db import FileStore, MemoryStore, StoreError
from src import models
from src.ledger import ResultsLedger
from src.scoring import ResultIdFactory


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def file_store(tmp_path):
    return FileStore(tmp_path / "data")


@pytest.fixture
def ledger(store):
    led = ResultsLedger(store)
    led.load()
    return led


@pytest.fixture
def id_factory():
    ticks = iter(range(1_700_000_000, 1_800_000_000))
    return ResultIdFactory(clock=lambda: next(ticks))


@pytest.fixture
def two_question_test():
    """Correct keys opt0 and opt1."""
    opts = (models.Option("opt0", "A"), models.Option("opt1", "B"))
    return models.Test(
        id="t1",
        name="Algebra Basics",
        duration="30m",
        questions=(
            models.Question(id="q1", prompt="First?", options=opts, correct_key="opt0"),
            models.Question(id="q2", prompt="Second?", options=opts, correct_key="opt1"),
        ),
    )


class FailingStore(MemoryStore):
    """Reads work, writes are rejected."""

    def set_item(self, key, value):
        raise StoreError("disk full")


@pytest.fixture
def failing_store():
    return FailingStore()
