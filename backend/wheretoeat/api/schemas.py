"""Request-body base: the frontend speaks camelCase JSON."""
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

Weekday = Literal["Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi", "Dimanche"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class DayHours(CamelModel):
    """One weekday of opening hours; the second service only counts when has_second_service is set."""

    is_open: bool = False
    open_time1: str | None = Field(None, pattern=TIME_PATTERN)
    close_time1: str | None = Field(None, pattern=TIME_PATTERN)
    has_second_service: bool = False
    open_time2: str | None = Field(None, pattern=TIME_PATTERN)
    close_time2: str | None = Field(None, pattern=TIME_PATTERN)

    @field_validator("open_time1", "close_time1", "open_time2", "close_time2", mode="before")
    @classmethod
    def blank_time_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


def dump_opening_hours(hours: dict[str, DayHours] | None) -> dict[str, dict[str, Any]] | None:
    """Stored JSON shape: camelCase keys, only the fields the client sent."""
    if hours is None:
        return None
    return {day: h.model_dump(by_alias=True, exclude_unset=True) for day, h in hours.items()}
