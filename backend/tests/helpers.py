from datetime import date, timedelta

# A stay window far enough ahead that "not in the past" never trips
BASE = date.today() + timedelta(days=60)

CUSTOMER = {"name": "Ana Petrova", "email": "ana@example.com", "phone": "+359 888 000 111"}


def day(offset: int) -> date:
    return BASE + timedelta(days=offset)
