"""Static room catalogue with nightly rates in EUR.

Keyed by room id; each room maps guest count (capacity tier) to a
(without breakfast, with breakfast) rate pair.
"""

ROOMS: dict[str, dict] = {
    "deluxe-double": {
        "name": "Deluxe Double Room",
        "rates": {
            2: (50, 55),
        },
    },
    "deluxe-double-balcony": {
        "name": "Deluxe Double Room With Balcony",
        "rates": {
            2: (60, 65),
            3: (75, 80),
        },
    },
    "triple-garden": {
        "name": "Triple Room with garden view",
        "rates": {
            2: (60, 65),
            3: (75, 80),
        },
    },
    "deluxe-family": {
        "name": "Deluxe Family Suite",
        "rates": {
            3: (80, 85),
            4: (95, 100),
        },
    },
}
