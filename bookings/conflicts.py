import logging

from core.dates import iter_days
from core.exceptions import SlotConflictError, ValidationError
from rooms import availability
from .models import Booking

logger = logging.getLogger(__name__)


def blocking_bookings(room, start_date, end_date, exclude_pk=None):
    """Бронирования комнаты, которые держат слоты в [start_date, end_date]"""
    queryset = Booking.objects.filter(
        room=room,
        status__in=Booking.BLOCKING_STATUSES,
        start_date__lte=end_date,
        end_date__gte=start_date,
    )
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    return list(queryset.only('pk', 'booking_id', 'start_date', 'end_date', 'time_slots'))


def _find_time_overlap(requested, day_bookings):
    """
    Первый запрошенный слот, время которого пересекается с существующим.
    Пары метка/метка не сравниваются: их учитывают счетчики BookedSlot.
    """
    for slot in requested:
        if not slot.is_timed:
            continue
        for booking in day_bookings:
            for existing in booking.resolved_slots:
                if slot.label and existing.label:
                    continue
                if slot.overlaps(existing):
                    return slot
    return None


def check_availability(room, start_date, end_date, slots, exclude_pk=None):
    """
    Проверяет, что все слоты свободны в каждом дне периода.

    Останавливается на первом конфликтном дне и бросает
    SlotConflictError(day, slot). Записи доступности создаются лениво и
    блокируются до конца транзакции (если БД поддерживает блокировки).
    """
    if end_date < start_date:
        raise ValidationError('Invalid start/end date: end_date is before start_date')
    if not slots:
        raise ValidationError('No time slots requested')

    labelled = [slot for slot in slots if slot.label]
    days = list(iter_days(start_date, end_date))
    # Сначала блокируются все дни периода, затем читаются бронирования:
    # интервальные запросы без меток сериализуются только этими блокировками
    records = [availability.get_day(room, day, lock=True) for day in days]
    existing = blocking_bookings(room, start_date, end_date, exclude_pk=exclude_pk)

    for day, record in zip(days, records):
        booked = record.booked_slots

        for slot in labelled:
            if booked.get(slot.label, 0) >= record.available_size:
                logger.info(f"Конфликт: слот {slot.label} комнаты {room.pk} занят на {day}")
                raise SlotConflictError(day, slot.label)

        day_bookings = [b for b in existing if b.start_date <= day <= b.end_date]
        overlap = _find_time_overlap(slots, day_bookings)
        if overlap is not None:
            logger.info(f"Конфликт: интервал {overlap.describe()} комнаты {room.pk} пересекается на {day}")
            raise SlotConflictError(day, overlap.describe())
