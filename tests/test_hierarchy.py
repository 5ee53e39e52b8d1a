"""
Hierarchy sync: raw data round-trips, shared storage and event cascades
through the hotel -> rooms -> room -> beds -> bed tree.
"""

import copy
from unittest.mock import patch

import pytest

from startree import Collection, Model, SyncState, TreeConfig, set_config
from conftest import Bed, Hotel, Reception, Rooms, hotel_data


def test_round_trip_preserves_raw_data(hotel):
    """Wiring a tree must not alter its serialized form."""
    assert hotel.to_json() == hotel_data()
    assert hotel.rooms.to_json() == hotel_data()["rooms"]
    assert hotel.reception.to_json() == {"staff": 2}


def test_round_trip_without_optional_relations():
    """Absent relations stay absent when the children are empty."""
    hotel = Hotel({"name": "Tiny"})
    assert hotel.to_json() == {"name": "Tiny"}
    assert len(hotel.rooms) == 0
    assert hotel.reception.to_json() == {}


def test_children_share_parent_storage(hotel, raw):
    """Each linked child's source is the very object its parent stores."""
    assert hotel.rooms.source is hotel.get("rooms")
    assert hotel.reception.source is hotel.get("reception")
    assert hotel.get("reception") is raw["reception"]

    for room in hotel.rooms:
        assert room.beds.source is room.get("beds")
        assert room.beds.parent is room


def test_related_children_are_wired(hotel):
    assert hotel.rooms.parent is hotel
    assert hotel.reception.parent is hotel
    assert hotel.get_relation(hotel.rooms) == "rooms"
    assert hotel.get_relation(hotel.reception) == "reception"
    assert set(hotel.relations) == {"rooms", "reception"}

    # Elements inherit the collection's parent but hold no relation of their own
    room = hotel.rooms.at(0)
    assert room.parent is hotel
    assert hotel.get_relation(room) is None
    assert room.beds.at(0).parent is room


def test_model_child_change_propagates(hotel, recorder):
    recorder.watch(hotel.reception, "reception")
    recorder.watch(hotel, "hotel")

    hotel.reception.set("staff", 5)

    assert recorder.events == [
        ("reception", "change:staff"),
        ("reception", "change"),
        ("hotel", "change:reception"),
        ("hotel", "change"),
    ]
    assert hotel.get("reception") == {"staff": 5}
    assert hotel.to_json()["reception"] == {"staff": 5}


def test_replacing_nested_list_cascades_in_order(hotel, recorder):
    """Setting room.beds resets the beds and bubbles exactly once per level."""
    room = hotel.rooms.at(0)
    recorder.watch(room, "room")
    recorder.watch(hotel, "hotel")

    room.set("beds", [{"size": "queen"}])

    assert recorder.events == [
        ("room", "change:beds"),
        ("room", "change"),
        ("hotel", "change:rooms"),
        ("hotel", "change"),
    ]
    assert room.beds.pluck("size") == ["queen"]
    assert room.beds.source is room.get("beds")
    assert hotel.get("rooms")[0]["beds"] == [{"size": "queen"}]


def test_second_room_bed_replacement_scenario(recorder):
    raw = {"rooms": [
        {"beds": [{"type": "queen"}]},
        {"beds": [{"type": "double"}, {"type": "sofa"}]},
    ]}
    hotel = Hotel(raw)
    room = hotel.rooms.at(1)
    recorder.watch(room, "room")
    recorder.watch(hotel, "hotel")

    room.set("beds", [{"type": "double"}])

    assert hotel.to_json() == {"rooms": [
        {"beds": [{"type": "queen"}]},
        {"beds": [{"type": "double"}]},
    ]}
    assert room.beds.source is hotel.get("rooms")[1]["beds"]
    assert recorder.events == [
        ("room", "change:beds"),
        ("room", "change"),
        ("hotel", "change:rooms"),
        ("hotel", "change"),
    ]


def test_replacing_parent_value_resets_collection(hotel):
    """sync_down: a new raw list on the parent rebuilds the collection from it."""
    new_rooms = [{"number": 7, "beds": []}]
    hotel.set("rooms", new_rooms)

    assert len(hotel.rooms) == 1
    assert hotel.rooms.source is new_rooms
    assert hotel.rooms.at(0).parent is hotel
    assert hotel.rooms.at(0).get("number") == 7


def test_replacing_parent_value_updates_model_child(hotel):
    hotel.set("reception", {"staff": 9, "desk": "north"})

    assert hotel.reception.to_json() == {"staff": 9, "desk": "north"}
    assert hotel.reception.source is hotel.get("reception")


def test_collection_add_propagates(hotel, recorder):
    recorder.watch(hotel, "hotel")

    room = hotel.rooms.add({"number": 3})

    assert recorder.events == [("hotel", "change:rooms"), ("hotel", "change")]
    assert hotel.get("rooms")[-1] == {"number": 3}
    assert room.parent is hotel

    # Later changes to the added element flow up through the collection
    room.set("floor", 1)
    assert hotel.get("rooms")[-1] == {"number": 3, "floor": 1}


def test_collection_reset_propagates(hotel, recorder):
    recorder.watch(hotel, "hotel")

    hotel.rooms.reset([{"number": 10}])

    assert recorder.events == [("hotel", "change:rooms"), ("hotel", "change")]
    assert hotel.get("rooms") == [{"number": 10}]
    assert hotel.rooms.at(0).parent is hotel


def test_prebuilt_model_joins_hierarchy(hotel, recorder):
    room = hotel.rooms.at(0)
    bed = Bed({"size": "twin"})
    room.beds.add(bed)

    assert bed.parent is room
    assert bed.collection is room.beds
    assert room.get("beds")[-1] == {"size": "twin"}

    recorder.watch(room, "room")
    bed.set("size", "queen")

    assert recorder.events == [("room", "change:beds"), ("room", "change")]
    assert room.get("beds")[-1] == {"size": "queen"}
    assert hotel.get("rooms")[0]["beds"][-1] == {"size": "queen"}


def test_deep_propagation_is_deterministic(recorder):
    """A change three levels down yields the same single pass every time."""
    sequences = []
    for _ in range(2):
        recorder.events = []
        hotel = Hotel(hotel_data())
        room = hotel.rooms.at(0)
        bed = room.beds.at(0)
        recorder.watch(bed, "bed")
        recorder.watch(room, "room")
        recorder.watch(hotel, "hotel")

        bed.set("size", "queen")
        sequences.append(list(recorder.events))

        assert hotel.get("rooms")[0]["beds"][0] == {"size": "queen"}

    assert sequences[0] == sequences[1]
    assert sequences[0] == [
        ("bed", "change:size"),
        ("bed", "change"),
        ("room", "change:beds"),
        ("room", "change"),
        ("hotel", "change:rooms"),
        ("hotel", "change"),
    ]


def test_silent_wiring_applies_defaults_without_events():
    class StaffedReception(Model):
        defaults = {"staff": 1}

    class Inn(Model):
        related = {"reception": StaffedReception}

        def __init__(self, *args, **kwargs):
            self.seen = []
            self.on("all", lambda name, *a: self.seen.append(name))
            super().__init__(*args, **kwargs)

    inn = Inn({"name": "Quiet"})

    assert inn.seen == []
    assert inn.get("reception") == {"staff": 1}
    assert inn.reception.source is inn.get("reception")


def test_defaults_are_not_shared_between_instances():
    class Tagged(Model):
        defaults = {"tags": []}

    first, second = Tagged(), Tagged()
    first.get("tags").append("x")
    assert second.get("tags") == []


def test_drift_is_repaired_on_next_write(hotel):
    """Equal-valued replacement swaps identity without events; the next write re-adopts."""
    hotel.set(copy.deepcopy(hotel.to_json()))
    assert hotel.rooms.source is not hotel.get("rooms")

    hotel.rooms.add({"number": 9})

    assert hotel.rooms.source is hotel.get("rooms")
    assert [r["number"] for r in hotel.get("rooms")] == [1, 2, 9]


def test_materializes_missing_value_on_first_write():
    hotel = Hotel({"name": "Fresh"})
    hotel.reception.set("staff", 1)

    assert hotel.get("reception") == {"staff": 1}
    assert hotel.reception.source is hotel.get("reception")


def test_guard_released_after_handler_raises(hotel):
    def explode(*args):
        raise RuntimeError("boom")

    hotel.on("change:reception", explode)
    with pytest.raises(RuntimeError, match="boom"):
        hotel.reception.set("staff", 4)

    assert hotel.reception.sync_state is SyncState.IDLE

    hotel.off("change:reception", explode)
    hotel.reception.set("staff", 7)
    assert hotel.get("reception") == {"staff": 7}


def test_bubbling_can_be_disabled(recorder):
    class QuietReception(Reception):
        bubbling_change_event = False

    class Lodge(Model):
        related = {"reception": QuietReception}

    lodge = Lodge({"reception": {"staff": 1}})
    recorder.watch(lodge, "lodge")

    lodge.reception.set("staff", 3)

    # Storage is still shared; only the parent announcement is skipped
    assert lodge.get("reception") == {"staff": 3}
    assert recorder.events == []


def test_removed_element_is_detached(hotel, recorder):
    room = hotel.rooms.at(0)
    hotel.rooms.remove(room)

    assert room.parent is None
    assert room.source is None
    assert room.collection is None
    assert [r["number"] for r in hotel.get("rooms")] == [2]

    recorder.watch(hotel, "hotel")
    room.set("number", 42)
    assert recorder.events == []
    assert [r["number"] for r in hotel.get("rooms")] == [2]


def test_removed_element_stays_linked_when_detach_disabled(hotel):
    set_config(TreeConfig(detach_on_remove=False))
    room = hotel.rooms.at(0)
    hotel.rooms.remove(room)

    assert room.parent is hotel
    assert room.collection is None


def test_reset_detaches_previous_elements(hotel):
    old_rooms = list(hotel.rooms)
    hotel.rooms.reset([])

    assert all(room.parent is None for room in old_rooms)
    assert hotel.get("rooms") == []


def test_unlinked_collection_has_no_parent_effects():
    rooms = Collection([{"number": 1}])

    assert rooms.parent is None
    assert rooms.at(0).parent is None
    rooms.add({"number": 2})
    assert rooms.to_json() == [{"number": 1}, {"number": 2}]


def test_parent_listeners_see_replaced_child_state(hotel):
    """The child absorbs a new raw value before the parent's observers run."""
    seen = []
    hotel.on("change:reception", lambda model, value, options: seen.append(hotel.reception.get("staff")))

    hotel.set("reception", {"staff": 9})

    assert seen == [9]


def test_touching_child_from_parent_listener_keeps_replacement(hotel):
    hotel.on("change:reception", lambda model, value, options: hotel.reception.set("touched", True))

    hotel.set("reception", {"staff": 9})

    assert hotel.reception.get("staff") == 9
    assert hotel.get("reception") == {"staff": 9, "touched": True}
    assert hotel.reception.source is hotel.get("reception")


def test_parent_listeners_see_replaced_elements_wired(hotel):
    parents = []
    hotel.on("change:rooms", lambda model, value, options: parents.extend(r.parent for r in hotel.rooms))

    hotel.set("rooms", [{"number": 7}, {"number": 8}])

    assert hotel.rooms.pluck("number") == [7, 8]
    assert parents == [hotel, hotel]


def test_explicit_sort_reorders_parent_raw_list(hotel, recorder):
    recorder.watch(hotel, "hotel")
    hotel.rooms.comparator = lambda room: -room.get("number")

    hotel.rooms.sort()

    assert [r["number"] for r in hotel.get("rooms")] == [2, 1]
    assert hotel.to_json()["rooms"] == hotel.rooms.to_json()
    assert hotel.rooms.source is hotel.get("rooms")
    assert recorder.events == [("hotel", "change:rooms"), ("hotel", "change")]


def test_sorted_add_projects_once(hotel, recorder):
    hotel.rooms.comparator = "number"
    recorder.watch(hotel, "hotel")

    hotel.rooms.add({"number": 0})

    assert [r["number"] for r in hotel.get("rooms")] == [0, 1, 2]
    assert recorder.events == [("hotel", "change:rooms"), ("hotel", "change")]


def test_each_direction_runs_a_single_pass(recorder):
    """Handler invocations stay at one sync_up and one sync_down per mutation."""
    with patch.object(Reception, "sync_up", autospec=True, side_effect=Reception.sync_up) as rec_up, \
            patch.object(Reception, "sync_down", autospec=True, side_effect=Reception.sync_down) as rec_down, \
            patch.object(Rooms, "sync_up", autospec=True, side_effect=Rooms.sync_up) as rooms_up, \
            patch.object(Rooms, "sync_down", autospec=True, side_effect=Rooms.sync_down) as rooms_down:
        hotel = Hotel(hotel_data())
        recorder.watch(hotel, "hotel")
        mocks = (rec_up, rec_down, rooms_up, rooms_down)

        def counts():
            result = tuple(m.call_count for m in mocks)
            for m in mocks:
                m.reset_mock()
            return result

        counts()

        # Upward: the child's write echoes back as one dropped sync_down
        hotel.reception.set("staff", 3)
        assert counts() == (1, 1, 0, 0)

        hotel.rooms.add({"number": 3})
        assert counts() == (0, 0, 1, 1)

        # Downward: the replacement echoes back as one dropped sync_up
        hotel.set("reception", {"staff": 8})
        assert counts() == (1, 1, 0, 0)

        recorder.events = []
        hotel.set("rooms", [{"number": 7}])
        assert counts() == (0, 0, 1, 1)
        assert recorder.events == [("hotel", "change:rooms"), ("hotel", "change")]

    assert hotel.get("reception") == {"staff": 8}
    assert hotel.get("rooms") == [{"number": 7}]
