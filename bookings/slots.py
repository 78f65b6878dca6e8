"""
Разбор и нормализация слотов бронирования.

Запрос может описывать время несколькими способами, которые появлялись в API
в разное время:
    - пресет ("3H", "6H", "FullTime", "Morning", "Evening", любой "<N>H");
    - start_time + пресет длительности (окно подряд идущих слотов);
    - явный список меток слотов;
    - список интервалов {"start", "end"} (или пара start_time/end_time).

parse_slot_spec() превращает сырые поля в один из вариантов SlotSpec,
resolve() - в упорядоченный кортеж ResolvedSlot. Дальше по системе
ходит только ResolvedSlot.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union

from core.exceptions import (
    InsufficientSlotsError,
    InvalidPresetError,
    InvalidSlotError,
    InvalidTimeFormatError,
    ValidationError,
)

DEFAULT_PRESET = '3H'
FULL_TIME = 'FullTime'

# Фиксированные наборы меток для переговорных
NAMED_PRESETS = {
    'Morning': ['09:00AM', '10:00AM', '11:00AM', '12:00PM'],
    'Evening': ['01:00PM', '02:00PM', '03:00PM', '04:00PM', '05:00PM', '06:00PM'],
}

DURATION_RE = re.compile(r'^(\d+)H$', re.IGNORECASE)
CLOCK_FORMATS = ('%H:%M', '%H:%M:%S', '%I:%M%p', '%I:%M %p', '%I%p')


@dataclass(frozen=True)
class ResolvedSlot:
    """
    Канонический слот: метка из allowed_slots и/или интервал времени.
    У интервальных слотов метки нет, у меток вида "09:00AM" есть время.
    """

    label: Optional[str]
    start: Optional[time] = None
    end: Optional[time] = None

    @property
    def is_timed(self) -> bool:
        return self.start is not None and self.end is not None

    def overlaps(self, other: 'ResolvedSlot') -> bool:
        # Полуоткрытые интервалы: 09:00-10:00 и 10:00-11:00 не пересекаются
        if not (self.is_timed and other.is_timed):
            return False
        return self.start < other.end and self.end > other.start

    def describe(self) -> str:
        if self.label:
            return self.label
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    def to_dict(self) -> dict:
        return {
            'label': self.label,
            'start': self.start.strftime('%H:%M') if self.start else None,
            'end': self.end.strftime('%H:%M') if self.end else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ResolvedSlot':
        return cls(
            label=data.get('label'),
            start=parse_clock(data['start']) if data.get('start') else None,
            end=parse_clock(data['end']) if data.get('end') else None,
        )


@dataclass(frozen=True)
class Discrete:
    labels: Tuple[str, ...]


@dataclass(frozen=True)
class Preset:
    name: str


@dataclass(frozen=True)
class Window:
    start_label: str
    preset: str


@dataclass(frozen=True)
class RangeList:
    ranges: Tuple[Tuple[time, time], ...]


SlotSpec = Union[Discrete, Preset, Window, RangeList]


def parse_clock(value) -> time:
    """Разбирает время "HH:MM" или "hh:mmAM" """
    if isinstance(value, time):
        return value
    text = str(value or '').strip().upper()
    for fmt in CLOCK_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise InvalidTimeFormatError(f"Invalid time format: '{value}'")


def _parse_range(item) -> Tuple[time, time]:
    start = parse_clock(item.get('start'))
    end = parse_clock(item.get('end'))
    if end <= start:
        raise InvalidTimeFormatError(
            f"End time must be after start time: {item.get('start')}-{item.get('end')}"
        )
    return start, end


def parse_slot_spec(data, space_type) -> SlotSpec:
    """
    Определяет, каким способом в запросе задано время
    """
    slots = data.get('slots')
    time_ranges = data.get('timeRanges', data.get('time_ranges')) or []
    start_time = (data.get('start_time') or '').strip()
    end_time = (data.get('end_time') or '').strip()

    if slots:
        if not isinstance(slots, list) or not all(isinstance(s, str) for s in slots):
            raise ValidationError('slots must be a list of slot labels')
        return Discrete(tuple(s.strip() for s in slots))

    if start_time and end_time:
        return RangeList((_parse_range({'start': start_time, 'end': end_time}),))

    if not isinstance(time_ranges, list):
        raise ValidationError('timeRanges must be a list')

    if time_ranges and all(isinstance(item, dict) for item in time_ranges):
        return RangeList(tuple(_parse_range(item) for item in time_ranges))

    if not all(isinstance(item, str) for item in time_ranges):
        raise ValidationError('timeRanges must contain either preset names or {start, end} ranges')

    names = [item.strip() for item in time_ranges]

    # Коды длительности, которые сами являются слотами типа ("3H", "6H")
    if names and all(name in space_type.allowed_slots for name in names):
        return Discrete(tuple(names))

    first = names[0] if names else ''
    if space_type.is_meeting_room:
        return Preset(first)
    if start_time:
        return Window(start_time, first or DEFAULT_PRESET)
    if first:
        return Preset(first)
    raise ValidationError('start_time is required for non-meeting space types')


def _preset_length(name, available):
    """Количество слотов для пресета длительности или None"""
    if name == FULL_TIME:
        return available
    match = DURATION_RE.match(name or '')
    if match:
        return int(match.group(1))
    return None


def label_slot(label, duration_hours) -> ResolvedSlot:
    try:
        start = parse_clock(label)
    except InvalidTimeFormatError:
        return ResolvedSlot(label)
    end_dt = datetime.combine(date.min, start) + timedelta(hours=duration_hours)
    end = end_dt.time() if end_dt.date() == date.min else time.max
    return ResolvedSlot(label, start, end)


def _resolve_labels(space_type, spec) -> list:
    allowed = list(space_type.allowed_slots)

    if isinstance(spec, Discrete):
        labels = list(dict.fromkeys(spec.labels))
        for label in labels:
            if label not in allowed:
                raise InvalidSlotError(f"Slot '{label}' is not allowed")
        labels.sort(key=allowed.index)
        if space_type.slot_behavior == space_type.BEHAVIOR_CONSECUTIVE and len(labels) > 1:
            positions = [allowed.index(label) for label in labels]
            if positions[-1] - positions[0] != len(positions) - 1:
                raise InvalidSlotError('Slots must be consecutive for this space type')
        return labels

    if isinstance(spec, Preset):
        if spec.name in NAMED_PRESETS:
            return list(NAMED_PRESETS[spec.name])
        if space_type.is_meeting_room:
            raise InvalidPresetError(
                f"Invalid timeRanges value for meeting room: '{spec.name}'. Use 'Morning' or 'Evening'"
            )
        count = _preset_length(spec.name, len(allowed))
        if count is None:
            raise InvalidPresetError(f"Unknown time preset: '{spec.name}'")
        if count > len(allowed):
            raise InsufficientSlotsError(
                f"Only {len(allowed)} slots available, but {count} requested"
            )
        return allowed[:count]

    if isinstance(spec, Window):
        if spec.preset in NAMED_PRESETS:
            return list(NAMED_PRESETS[spec.preset])
        if spec.start_label not in allowed:
            raise InvalidSlotError('Invalid start_time')
        start_index = allowed.index(spec.start_label)
        count = _preset_length(spec.preset, len(allowed) - start_index)
        if count is None:
            raise InvalidPresetError(f"Unknown time preset: '{spec.preset}'")
        window = allowed[start_index:start_index + count]
        if len(window) < count:
            raise InsufficientSlotsError(
                f"Only {len(window)} slots available from {spec.start_label}, but {count} requested"
            )
        return window

    raise ValidationError('Unsupported slot specification')


def resolve(space_type, spec: SlotSpec) -> Tuple[ResolvedSlot, ...]:
    """
    Нормализует SlotSpec в упорядоченный набор слотов для типа пространства
    """
    if isinstance(spec, RangeList):
        ranges = sorted(spec.ranges)
        for (_, prev_end), (next_start, _) in zip(ranges, ranges[1:]):
            if next_start < prev_end:
                raise ValidationError('Requested time ranges overlap each other')
        return tuple(ResolvedSlot(None, start, end) for start, end in ranges)

    if not space_type.allowed_slots:
        raise ValidationError('Invalid spaceTypeId or missing allowedSlots')

    labels = _resolve_labels(space_type, spec)
    if space_type.slot_behavior == space_type.BEHAVIOR_FULL_BLOCK:
        labels = list(space_type.allowed_slots)

    # Пресеты переговорных берутся как есть, поэтому проверяем каждую метку
    for label in labels:
        if label not in space_type.allowed_slots:
            raise InvalidSlotError(f"Slot '{label}' is not allowed")

    return tuple(label_slot(label, space_type.slot_duration) for label in labels)


def resolve_request(space_type, data) -> Tuple[ResolvedSlot, ...]:
    return resolve(space_type, parse_slot_spec(data, space_type))
