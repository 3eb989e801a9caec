import json
from datetime import datetime

import pytest

from bookings.models import Booking, InvalidBooking, ServiceType
from bookings.recent import RecentBookings


@pytest.fixture
def form():
    return {
        "name": "  Asha Verma ",
        "phone": " 9876543210",
        "pickup": "Clock Tower",
        "hospital": "District Hospital ",
        "type": "Advanced",
    }


def make_booking(index: int) -> Booking:
    return Booking.new(
        name=f"Patient {index}",
        phone=f"90000000{index:02d}",
        pickup="Clock Tower",
        hospital="District Hospital",
        type=ServiceType.BASIC,
        created_at=datetime(2026, 1, 1, 10, index),
    )


def test_form_fields_are_trimmed_and_type_is_coerced(form):
    booking = Booking.from_form(form)

    assert booking.name == "Asha Verma"
    assert booking.phone == "9876543210"
    assert booking.hospital == "District Hospital"
    assert booking.type == ServiceType.ADVANCED
    assert isinstance(booking.created_at, datetime)


@pytest.mark.parametrize("field_name", ["name", "phone", "pickup", "hospital"])
def test_blank_required_field_is_rejected(form, field_name):
    form[field_name] = "   "

    with pytest.raises(InvalidBooking) as excinfo:
        Booking.from_form(form)

    assert excinfo.value.missing_fields == [field_name]


def test_missing_keys_and_unknown_type_are_all_reported():
    with pytest.raises(InvalidBooking) as excinfo:
        Booking.from_form({"name": "Asha", "type": "helicopter"})

    assert excinfo.value.missing_fields == ["phone", "pickup", "hospital", "type"]


@pytest.mark.parametrize("bad_type", [5, None, ["basic"]])
def test_non_text_service_type_is_reported_as_missing(form, bad_type):
    form["type"] = bad_type

    with pytest.raises(InvalidBooking) as excinfo:
        Booking.from_form(form)

    assert excinfo.value.missing_fields == ["type"]


def test_booking_is_immutable(form):
    booking = Booking.from_form(form)
    with pytest.raises(Exception):
        booking.name = "Someone else"


def test_summary_lists_the_confirmation_details(form):
    form["created_at"] = datetime(2026, 3, 4, 5, 6, 7)
    summary = Booking.from_form(form).summary()

    assert "Patient: Asha Verma" in summary
    assert "Destination: District Hospital" in summary
    assert "Type: ADVANCED" in summary
    assert "Time: 2026-03-04 05:06:07" in summary


def test_dict_form_survives_json(form):
    booking = Booking.from_form(form)
    restored = Booking.from_dict(json.loads(json.dumps(booking.to_dict())))
    assert restored == booking


def test_recent_bookings_are_most_recent_first_and_bounded():
    recent = RecentBookings()

    for index in range(10):
        recent.push_recent(make_booking(index))

    listed = recent.list_recent()
    assert len(listed) == 8
    assert [b.name for b in listed] == [f"Patient {i}" for i in range(9, 1, -1)]


def test_recent_bookings_list_is_a_copy():
    recent = RecentBookings(limit=2)
    recent.push_recent(make_booking(1))

    recent.list_recent().clear()

    assert len(recent) == 1


def test_recent_bookings_persist_to_json(tmp_path):
    path = tmp_path / "recent.json"
    recent = RecentBookings(limit=3, filepath=str(path))
    for index in range(4):
        recent.push_recent(make_booking(index))

    reloaded = RecentBookings(limit=3, filepath=str(path))

    assert [b.name for b in reloaded.list_recent()] == ["Patient 3", "Patient 2", "Patient 1"]


def test_corrupt_recent_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "recent.json"
    path.write_text("{not json", encoding="utf-8")

    recent = RecentBookings(filepath=str(path))

    assert recent.list_recent() == []


@pytest.mark.parametrize("content", [
    '{"name": "x"}',
    '["oops"]',
    "[1, 2]",
])
def test_wrong_shape_recent_file_is_treated_as_empty(tmp_path, content):
    """
    Valid JSON that is not a list of booking objects must not break startup.
    """
    path = tmp_path / "recent.json"
    path.write_text(content, encoding="utf-8")

    recent = RecentBookings(filepath=str(path))

    assert recent.list_recent() == []

    # the store still works and overwrites the bad file
    recent.push_recent(make_booking(1))
    assert [b.name for b in RecentBookings(filepath=str(path)).list_recent()] == ["Patient 1"]


def test_recent_limit_must_be_positive():
    with pytest.raises(ValueError):
        RecentBookings(limit=0)
