from datetime import date, timedelta
from decimal import Decimal

import pytest

from guesthouse.errors import CapacityExceeded, InvalidDateRange, UnknownRoom
from guesthouse.services.availability_service import (
    availability_service,
    ranges_overlap,
    validate_stay,
)
from tests.helpers import day

MAY_1, MAY_3, MAY_5 = date(2027, 5, 1), date(2027, 5, 3), date(2027, 5, 5)


def test_true_overlap():
    assert ranges_overlap(MAY_1, MAY_5, MAY_3, date(2027, 5, 7))


def test_adjacent_stays_do_not_overlap():
    assert not ranges_overlap(MAY_1, MAY_3, MAY_3, MAY_5)
    assert not ranges_overlap(MAY_3, MAY_5, MAY_1, MAY_3)


def test_overlap_is_symmetric():
    ranges = [
        (MAY_1, MAY_3),
        (MAY_3, MAY_5),
        (MAY_1, MAY_5),
        (date(2027, 5, 2), date(2027, 5, 4)),
        (date(2027, 5, 6), date(2027, 5, 8)),
    ]
    for a in ranges:
        for b in ranges:
            assert ranges_overlap(*a, *b) == ranges_overlap(*b, *a)


def test_containment_overlaps():
    assert ranges_overlap(MAY_1, MAY_5, date(2027, 5, 2), date(2027, 5, 3))


def test_validate_stay_counts_nights():
    assert validate_stay(day(0), day(3)) == 3


@pytest.mark.parametrize("check_in,check_out", [(day(2), day(2)), (day(3), day(1))])
def test_validate_stay_rejects_empty_or_inverted(check_in, check_out):
    with pytest.raises(InvalidDateRange):
        validate_stay(check_in, check_out)


def test_validate_stay_rejects_past_check_in():
    today = date.today()
    with pytest.raises(InvalidDateRange):
        validate_stay(today - timedelta(days=1), today + timedelta(days=1))
    assert validate_stay(today, today + timedelta(days=1)) == 1


async def test_all_rooms_free_for_an_empty_calendar(db):
    result = await availability_service.check_availability(db, day(0), day(3), 2, True)
    assert result["available"] is True
    assert result["nights"] == 3
    assert {r["id"] for r in result["rooms"]} == {
        "deluxe-double", "deluxe-double-balcony", "triple-garden", "deluxe-family",
    }


async def test_capacity_filters_rooms(db):
    result = await availability_service.check_availability(db, day(0), day(2), 4, False)
    assert [r["id"] for r in result["rooms"]] == ["deluxe-family"]
    assert result["rooms"][0]["total"] == Decimal("190")


async def test_overlapping_booking_hides_room(db, make_booking):
    await make_booking("deluxe-double", day(0), day(2))
    result = await availability_service.check_availability(db, day(1), day(4), 2, False)
    assert "deluxe-double" not in {r["id"] for r in result["rooms"]}


async def test_adjacent_booking_keeps_room(db, make_booking):
    await make_booking("deluxe-double", day(0), day(2))
    result = await availability_service.check_availability(db, day(2), day(4), 2, False)
    assert "deluxe-double" in {r["id"] for r in result["rooms"]}


async def test_expired_booking_does_not_block(db, make_booking):
    await make_booking("deluxe-double", day(0), day(2), status="expired")
    result = await availability_service.check_availability(db, day(0), day(2), 2, False)
    assert "deluxe-double" in {r["id"] for r in result["rooms"]}


async def test_paid_booking_blocks(db, make_booking):
    await make_booking("deluxe-double", day(0), day(2), status="paid")
    check = await availability_service.check_room(db, "deluxe-double", day(1), day(2), 2, False)
    assert check["available"] is False


async def test_no_room_free(db, make_booking):
    for room_id in ("deluxe-double", "deluxe-double-balcony", "triple-garden", "deluxe-family"):
        await make_booking(room_id, day(0), day(5), guests=3 if room_id == "deluxe-family" else 2)
    result = await availability_service.check_availability(db, day(1), day(2), 2, False)
    assert result == {"available": False, "nights": 1, "rooms": []}


async def test_never_returns_a_room_with_an_intersecting_booking(db, make_booking):
    booked = {
        "deluxe-double": (day(0), day(3)),
        "triple-garden": (day(5), day(8)),
        "deluxe-double-balcony": (day(2), day(6)),
    }
    for room_id, (start, end) in booked.items():
        await make_booking(room_id, start, end)

    for start_offset in range(0, 8):
        for length in (1, 2, 4):
            start, end = day(start_offset), day(start_offset + length)
            result = await availability_service.check_availability(db, start, end, 2, False)
            for room in result["rooms"]:
                if room["id"] in booked:
                    assert not ranges_overlap(start, end, *booked[room["id"]])


async def test_check_room_quotes_total(db):
    check = await availability_service.check_room(db, "deluxe-double", day(0), day(3), 2, True)
    assert check == {
        "available": True,
        "nights": 3,
        "total": Decimal("165"),
        "room_name": "Deluxe Double Room",
    }


async def test_check_room_errors(db):
    with pytest.raises(UnknownRoom):
        await availability_service.check_room(db, "attic", day(0), day(1), 2, True)
    with pytest.raises(CapacityExceeded):
        await availability_service.check_room(db, "deluxe-double", day(0), day(1), 3, True)


async def test_booked_ranges_hide_guests_and_finished_stays(db, make_booking):
    past_start = date.today() - timedelta(days=5)
    await make_booking("deluxe-double", past_start, past_start + timedelta(days=2), status="paid")
    await make_booking("triple-garden", day(0), day(2), status="paid")
    await make_booking("deluxe-family", day(3), day(4), status="expired", guests=3)

    ranges = await availability_service.list_booked_ranges(db)
    assert ranges == [{"start": day(0), "end": day(2), "room_type": "triple-garden"}]
