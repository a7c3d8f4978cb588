"""Time-of-day slot value type."""

import re

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')


class TimeSlot(BaseModel):
    """Half-open interval ``[start, end)`` within one day.

    Times are normalized to zero-padded ``HH:MM`` so plain string comparison
    orders them correctly.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    start: str
    end: str

    @field_validator('start', 'end', mode='before')
    @classmethod
    def normalize_time(cls, value: object) -> str:
        if not isinstance(value, str):
            raise ValueError('Please provide a valid time format (HH:MM).')

        match = TIME_PATTERN.match(value.strip())
        if not match:
            raise ValueError('Please provide a valid time format (HH:MM).')

        hour, minute = match.groups()
        return f'{int(hour):02d}:{minute}'

    @model_validator(mode='after')
    def validate_order(self) -> 'TimeSlot':
        if self.start >= self.end:
            raise ValueError('Slot start time must be before its end time.')
        return self

    def overlaps(self, other: 'TimeSlot') -> bool:
        return self.start < other.end and other.start < self.end

    def as_dict(self) -> dict:
        return {'start': self.start, 'end': self.end}


def load_slots(raw_slots: list[dict] | None) -> list[TimeSlot]:
    return [TimeSlot.model_validate(raw) for raw in raw_slots or []]


def dump_slots(slots: list[TimeSlot]) -> list[dict]:
    return [slot.as_dict() for slot in slots]
