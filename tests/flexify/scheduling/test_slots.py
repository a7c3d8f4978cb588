import pytest
from pydantic import ValidationError

from flexify.errors import InvalidInputError
from flexify.scheduling.conflicts import find_overlapping_pair, validate_slot_list
from flexify.scheduling.slots import TimeSlot, dump_slots, load_slots


def test_time_slot_pads_single_digit_hours() -> None:
    slot = TimeSlot(start='9:00', end=' 10:30 ')

    assert slot.start == '09:00'
    assert slot.end == '10:30'


@pytest.mark.parametrize(
    ('start', 'end'),
    [
        ('24:00', '25:00'),
        ('09:60', '10:00'),
        ('0900', '1000'),
        ('10:00', '09:00'),
        ('10:00', '10:00'),
    ],
)
def test_time_slot_rejects_malformed_or_inverted_times(start: str, end: str) -> None:
    with pytest.raises(ValidationError):
        TimeSlot(start=start, end=end)


def test_time_slots_compare_and_hash_by_value() -> None:
    assert TimeSlot(start='9:00', end='10:00') == TimeSlot(start='09:00', end='10:00')
    assert len({TimeSlot(start='09:00', end='10:00'), TimeSlot(start='9:00', end='10:00')}) == 1


def test_adjacent_slots_do_not_overlap() -> None:
    first = TimeSlot(start='09:00', end='10:00')
    second = TimeSlot(start='10:00', end='11:00')

    assert not first.overlaps(second)
    assert not second.overlaps(first)


def test_nested_and_partial_slots_overlap() -> None:
    outer = TimeSlot(start='09:00', end='12:00')

    assert outer.overlaps(TimeSlot(start='10:00', end='11:00'))
    assert outer.overlaps(TimeSlot(start='11:30', end='13:00'))
    assert TimeSlot(start='08:00', end='09:30').overlaps(outer)


def test_find_overlapping_pair_checks_every_pair() -> None:
    slots = [
        TimeSlot(start='09:00', end='10:00'),
        TimeSlot(start='13:00', end='14:00'),
        TimeSlot(start='09:30', end='10:30'),
    ]

    assert find_overlapping_pair(slots) == (slots[0], slots[2])
    assert find_overlapping_pair(slots[:2]) is None


def test_validate_slot_list_rejects_empty_and_duplicate_slots() -> None:
    with pytest.raises(InvalidInputError) as exception_info:
        validate_slot_list([])
    assert exception_info.value.detail == 'At least one time slot is required.'

    duplicate = TimeSlot(start='09:00', end='10:00')
    with pytest.raises(InvalidInputError) as exception_info:
        validate_slot_list([duplicate, duplicate])
    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Time slots 09:00-10:00 and 09:00-10:00 overlap.'


def test_dump_and_load_slots_preserve_order() -> None:
    slots = [TimeSlot(start='14:00', end='15:00'), TimeSlot(start='08:00', end='09:00')]

    assert dump_slots(slots) == [{'start': '14:00', 'end': '15:00'}, {'start': '08:00', 'end': '09:00'}]
    assert load_slots(dump_slots(slots)) == slots
    assert load_slots(None) == []
