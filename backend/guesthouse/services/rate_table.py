"""Rate table — room lookup, capacity tier selection and stay pricing.

Pure lookups over the static catalogue in ``guesthouse.data.rooms``; shared
by the API and the client so both price a stay identically.
"""

from dataclasses import dataclass
from decimal import Decimal

from guesthouse.data.rooms import ROOMS
from guesthouse.errors import CapacityExceeded, InvalidNights, UnknownRoom, ValidationError


@dataclass(frozen=True)
class TierRate:
    without_breakfast: Decimal
    with_breakfast: Decimal


@dataclass(frozen=True)
class RoomType:
    id: str
    name: str
    rates: dict[int, TierRate]

    @property
    def capacity_tiers(self) -> list[int]:
        return sorted(self.rates)

    @property
    def max_guests(self) -> int:
        return max(self.rates)

    def can_seat(self, guests: int) -> bool:
        return 1 <= guests <= self.max_guests

    def rate(self, tier: int, breakfast: bool) -> Decimal:
        """Nightly rate for a declared tier. KeyError for undeclared tiers."""
        pair = self.rates[tier]
        return pair.with_breakfast if breakfast else pair.without_breakfast

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "capacityTiers": self.capacity_tiers,
            "rates": {
                str(tier): {
                    "withoutBreakfast": float(pair.without_breakfast),
                    "withBreakfast": float(pair.with_breakfast),
                }
                for tier, pair in sorted(self.rates.items())
            },
        }


def _build_room_types() -> dict[str, RoomType]:
    room_types = {}
    for room_id, entry in ROOMS.items():
        rates = {
            tier: TierRate(Decimal(str(without)), Decimal(str(with_)))
            for tier, (without, with_) in entry["rates"].items()
        }
        for tier, pair in rates.items():
            if pair.with_breakfast < pair.without_breakfast:
                raise ValueError(f"{room_id}: breakfast rate below room-only rate for {tier} guests")
        room_types[room_id] = RoomType(id=room_id, name=entry["name"], rates=rates)
    return room_types


ROOM_TYPES: dict[str, RoomType] = _build_room_types()


def list_room_types() -> list[RoomType]:
    return list(ROOM_TYPES.values())


def get_room(room_id: str) -> RoomType:
    room = ROOM_TYPES.get(room_id)
    if room is None:
        raise UnknownRoom(f"Unknown room type '{room_id}'")
    return room


def select_tier(room: RoomType, guests: int) -> int:
    """Pick the capacity tier that prices a party of ``guests``.

    Exact tier if declared, otherwise the largest tier below the party
    size. Parties smaller than the smallest tier pay the smallest tier.
    """
    if guests < 1:
        raise ValidationError("At least one guest is required")
    if guests in room.rates:
        return guests
    if guests > room.max_guests:
        raise CapacityExceeded(
            f"{room.name} sleeps at most {room.max_guests} guests, {guests} requested"
        )
    smaller = [tier for tier in room.capacity_tiers if tier <= guests]
    return max(smaller) if smaller else room.capacity_tiers[0]


def price_for_night(room_id: str, guests: int, breakfast: bool) -> Decimal:
    room = get_room(room_id)
    return room.rate(select_tier(room, guests), breakfast)


def total_price(room_id: str, guests: int, breakfast: bool, nights: int) -> Decimal:
    if nights <= 0:
        raise InvalidNights(f"A stay needs at least one night, got {nights}")
    return price_for_night(room_id, guests, breakfast) * nights
