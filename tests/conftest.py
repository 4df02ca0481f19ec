import pytest

from helpers import BASIC_ROWS, FakeScheduler, make_tape


@pytest.fixture
def basic_tape() -> str:
    return make_tape(BASIC_ROWS)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
