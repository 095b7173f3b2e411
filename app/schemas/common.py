from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def to_naive_utc(value: datetime) -> datetime:
    """DateTime columns hold naive UTC; offset-aware input (e.g. '...Z') is converted."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]
