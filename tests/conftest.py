"""
Shared fixtures: the hotel hierarchy and clean global state per test.
"""

import logging

import pytest

from startree import Collection, Model, get_memory_backend, set_config


class Bed(Model):
    pass


class Beds(Collection):
    model = Bed


class Room(Model):
    related = {"beds": Beds}


class Rooms(Collection):
    model = Room


class Reception(Model):
    pass


class Hotel(Model):
    related = {"rooms": Rooms, "reception": Reception}


def hotel_data():
    """Fresh raw data for one hotel."""
    return {
        "name": "Grand",
        "rooms": [
            {"number": 1, "beds": [{"size": "single"}, {"size": "double"}]},
            {"number": 2, "beds": [{"size": "king"}]},
        ],
        "reception": {"staff": 2},
    }


@pytest.fixture(autouse=True)
def clean_state():
    """Reset configuration and the memory backend around every test."""
    set_config(None)
    get_memory_backend().cleanup()
    yield
    set_config(None)
    get_memory_backend().cleanup()

    logger = logging.getLogger("startree")
    for handler in list(logger.handlers):
        if getattr(handler, "_startree_handler", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def raw():
    return hotel_data()


@pytest.fixture
def hotel(raw):
    return Hotel(raw)


@pytest.fixture
def recorder():
    """Collects (label, event name) pairs from any number of nodes."""
    class Recorder:
        def __init__(self):
            self.events = []

        def watch(self, node, label):
            node.on("all", lambda name, *args: self.events.append((label, name)))
            return node

        def names(self, *names):
            return [event for event in self.events if event[1] in names]

    return Recorder()
