import numpy as np
import pytest

from furlong.models import RacingEntity
from furlong.simulation import VirtualScheduler
from furlong.sync import InMemoryRecordStore


@pytest.fixture()
def scheduler():
    return VirtualScheduler()


@pytest.fixture()
def rng():
    return np.random.default_rng(42)


@pytest.fixture()
def roster():
    return {
        "p1": RacingEntity(id="p1", name="Alice", is_host=True),
        "p2": RacingEntity(id="p2", name="Bob"),
        "p3": RacingEntity(id="p3", name="Cara"),
    }


@pytest.fixture()
def store():
    return InMemoryRecordStore()
