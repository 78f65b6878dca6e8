import logging

from django.utils import timezone

from bookings.models import Booking
from bookings.slots import label_slot
from core.dates import iter_days
from .cache import AvailabilityCache
from .models import RoomAvailability

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Сервис для работы с доступностью комнат
    """

    @classmethod
    def get_room_availability(cls, room, start_date, end_date):
        """
        Доступность комнаты по дням и слотам (с использованием кеша)
        """
        days = []
        for day in iter_days(start_date, end_date):
            snapshot = AvailabilityCache.snapshot(room.pk, day)
            cached_data = AvailabilityCache.get_availability(room.pk, day)
            if cached_data is not None:
                logger.debug(f"Данные получены из кеша для комнаты {room.pk} на {day}")
                days.append(cached_data)
                continue

            day_data = cls._calculate_day(room, day)
            AvailabilityCache.set_availability(room.pk, day, day_data, snapshot=snapshot)
            days.append(day_data)

        return {
            'roomId': room.pk,
            'roomName': room.name,
            'capacity': room.capacity,
            'availability': days,
        }

    @classmethod
    def _calculate_day(cls, room, day):
        """
        Вычисляет доступность комнаты на дату.
        Счетчики берутся из RoomAvailability; интервальные бронирования
        без меток делают пересекающиеся слоты полностью занятыми.
        """
        space_type = room.space_type
        record = RoomAvailability.objects.filter(room=room, date=day).prefetch_related('slots').first()
        available_size = record.available_size if record else room.capacity
        booked_slots = record.booked_slots if record else {}

        bookings = Booking.objects.filter(
            room=room,
            status__in=Booking.BLOCKING_STATUSES,
            start_date__lte=day,
            end_date__gte=day,
        ).only('time_slots')
        booked_ranges = [
            slot for booking in bookings for slot in booking.resolved_slots if slot.label is None
        ]

        time_slots = {}
        for label in space_type.allowed_slots:
            booked = booked_slots.get(label, 0)
            window = label_slot(label, space_type.slot_duration)
            if any(window.overlaps(taken) for taken in booked_ranges):
                booked = available_size
            available = max(0, available_size - booked)
            time_slots[label] = {
                'available': available,
                'booked': booked,
                'isAvailable': available > 0,
            }

        return {
            'date': day.isoformat(),
            'day': day.strftime('%A'),
            'availableSize': available_size,
            'timeSlots': time_slots,
            'bookedRanges': [taken.to_dict() for taken in booked_ranges],
            'isAvailable': any(slot['isAvailable'] for slot in time_slots.values()),
        }

    @classmethod
    def sync_capacity(cls, room):
        """
        Переносит новую вместимость на будущие дни, уже имеющие записи
        """
        updated = RoomAvailability.objects.filter(
            room=room, date__gte=timezone.localdate()
        ).update(available_size=room.capacity)
        logger.info(f"Вместимость комнаты {room.pk} обновлена в {updated} записях доступности")
        return updated

    @classmethod
    def handle_room_change(cls, room_id, affected_dates=None):
        """
        Обрабатывает изменение комнаты (инвалидация кеша)
        """
        logger.info(f"Инвалидация кеша для измененной комнаты: {room_id}")
        AvailabilityCache.invalidate_room_availability(room_id, affected_dates)

    @classmethod
    def handle_booking_change(cls, booking, old_dates=None):
        """
        Обрабатывает изменение бронирования (инвалидация кеша)
        """
        affected_dates = set(cls.get_affected_dates_from_booking(booking))

        # Добавляем старые даты (если бронирование обновляется)
        if old_dates:
            affected_dates.update(old_dates)

        logger.info(
            f"Инвалидация кеша для измененного бронирования комнаты: {booking.room_id}, "
            f"дат: {len(affected_dates)}")
        AvailabilityCache.invalidate_room_availability(booking.room_id, sorted(affected_dates))

    @classmethod
    def get_affected_dates_from_booking(cls, booking):
        """
        Получает список дат, затронутых бронированием
        """
        if not booking:
            return []
        return list(iter_days(booking.start_date, booking.end_date))
