from datetime import date, datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator
from pydantic.alias_generators import to_camel


def _to_calendar_date(value):
    """Stay dates are plain calendar dates (``YYYY-MM-DD``); timestamps are refused.

    A local midnight serialized as UTC falls on the previous day east of
    Greenwich, so no timestamp can be mapped to a stay date safely.
    """
    if isinstance(value, datetime) or (isinstance(value, (int, float)) and not isinstance(value, bool)):
        raise ValueError("expected a calendar date (YYYY-MM-DD), not a timestamp")
    if isinstance(value, str) and ("T" in value or " " in value.strip()):
        raise ValueError("expected a calendar date (YYYY-MM-DD), not a timestamp")
    return value


StayDate = Annotated[date, BeforeValidator(_to_calendar_date)]


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }
