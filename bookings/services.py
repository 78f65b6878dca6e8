from decimal import Decimal
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.dates import iter_days
from core.exceptions import AlreadyCancelledError, NotFoundError, ValidationError
from rewards.services import RewardService
from rooms import availability
from rooms.models import SpaceType
from rooms.services import AvailabilityService
from .conflicts import check_availability
from .models import Booking
from .slots import resolve_request

logger = logging.getLogger(__name__)


class BookingService:
    """
    Жизненный цикл бронирования: создание, отмена, удаление, смена статуса
    """

    BOOKING_ID_ATTEMPTS = 10
    # Через update_status можно выставить только эти статусы
    UPDATABLE_STATUSES = (Booking.STATUS_PENDING, Booking.STATUS_BOOKED, Booking.STATUS_CONFIRMED)

    @classmethod
    def _generate_unique_booking_id(cls):
        for _ in range(cls.BOOKING_ID_ATTEMPTS):
            booking_id = Booking.generate_booking_id()
            if not Booking.objects.filter(booking_id=booking_id).exists():
                return booking_id
        raise RuntimeError('Could not generate a unique booking id')

    @classmethod
    def _reward_discount(cls, user, total_amount, points_requested):
        """
        Считает скидку баллами до каких-либо записей в БД.
        Возвращает (баллы к списанию, сумма скидки).
        """
        calculation = RewardService.calculate_discount(user, total_amount)
        if points_requested > 0:
            if points_requested > calculation['points_to_use']:
                raise ValidationError(
                    f"Cannot use more than {calculation['points_to_use']} points for this booking"
                )
            return points_requested, RewardService.points_to_currency(points_requested)
        return calculation['points_to_use'], calculation['discount_amount']

    @classmethod
    def create_booking(cls, user, room, start_date, end_date=None, slot_request=None,
                       space_type=None, guests=1, total_amount=0, service_fee_and_tax=0,
                       status=Booking.STATUS_PENDING, use_reward_points=False, points_to_use=0,
                       extra_amenity=None, ip_address=None):
        """
        Создает бронирование.

        Проверка слотов, запись бронирования, резервирование и счетчики
        типа пространства выполняются в одной транзакции. Операции с баллами
        идут после нее и не отменяют бронирование при ошибке.
        """
        end_date = end_date or start_date
        if end_date < start_date:
            raise ValidationError('Invalid start/end date: end_date is before start_date')
        if space_type is not None and space_type.pk != room.space_type_id:
            raise ValidationError('spaceTypeId does not match the room space type')
        if status not in cls.UPDATABLE_STATUSES:
            raise ValidationError(f"Invalid status for a new booking: '{status}'")

        space_type = room.space_type
        slots = resolve_request(space_type, slot_request or {})
        labels = [slot.label for slot in slots if slot.label]

        total_amount = Decimal(str(total_amount))
        reward_settings = RewardService.get_settings()
        points_used, discount = 0, Decimal('0')
        if use_reward_points:
            points_used, discount = cls._reward_discount(user, total_amount, int(points_to_use or 0))

        days = list(iter_days(start_date, end_date))
        with transaction.atomic():
            check_availability(room, start_date, end_date, slots)
            booking = Booking.objects.create(
                booking_id=cls._generate_unique_booking_id(),
                user=user,
                room=room,
                space_type=space_type,
                guests=guests,
                extra_amenity=extra_amenity or [],
                start_date=start_date,
                end_date=end_date,
                start_time=slots[0].describe(),
                time_slots=[slot.to_dict() for slot in slots],
                status=status,
                total_amount=total_amount,
                service_fee_and_tax=service_fee_and_tax,
                amount_paid=max(total_amount - discount, Decimal('0')),
                reward_points_used=points_used,
                reward_discount=discount,
            )
            availability.reserve(room, days, labels)
            SpaceType.objects.filter(pk=space_type.pk).update(
                last_booked_at=timezone.now(),
                bookings_count=F('bookings_count') + 1,
            )

        logger.info(
            f"Создано бронирование {booking.booking_id}: комната {room.pk}, "
            f"{start_date}..{end_date}, слоты {[slot.describe() for slot in slots]}"
        )
        booking.reward_points_earned = cls._apply_reward_effects(
            booking, user, reward_settings, points_used, ip_address
        )
        AvailabilityService.handle_booking_change(booking)
        return booking

    @classmethod
    def _apply_reward_effects(cls, booking, user, reward_settings, points_used, ip_address):
        """
        Списание и начисление баллов по бронированию (best-effort)
        """
        earned = 0
        try:
            if points_used > 0:
                RewardService.deduct_points(
                    user,
                    points_used,
                    booking=booking,
                    note=f"Points redeemed for booking {booking.booking_id}",
                    created_by=user,
                    ip_address=ip_address,
                )
            if booking.total_amount >= reward_settings.min_booking_amount_for_points:
                RewardService.add_points(
                    user,
                    reward_settings.points_per_booking,
                    booking=booking,
                    note=f"Points earned from booking {booking.booking_id}",
                    created_by=user,
                    ip_address=ip_address,
                )
                earned = reward_settings.points_per_booking
        except Exception:
            logger.exception(f"Не удалось обработать баллы для бронирования {booking.booking_id}")
        return earned

    @classmethod
    def cancel_booking(cls, booking_id):
        """
        Отменяет бронирование по внешнему коду и освобождает слоты.
        Баллы и счетчики типа пространства не меняются.
        """
        with transaction.atomic():
            booking = availability.lock_if_possible(
                Booking.objects.filter(booking_id=booking_id)
            ).first()
            if booking is None:
                raise NotFoundError('Booking not found')
            if booking.is_cancelled:
                raise AlreadyCancelledError('Booking is already cancelled')

            booking.status = Booking.STATUS_CANCELLED
            booking.save(update_fields=['status', 'updated_at'])
            availability.release(booking.room, booking.days, booking.slot_labels)

        logger.info(f"Бронирование {booking.booking_id} отменено")
        AvailabilityService.handle_booking_change(booking)
        return booking

    @classmethod
    def delete_booking(cls, pk):
        """
        Удаляет бронирование, освобождает слоты и уменьшает счетчик типа
        """
        with transaction.atomic():
            booking = availability.lock_if_possible(Booking.objects.filter(pk=pk)).first()
            if booking is None:
                raise NotFoundError('Booking not found')

            room, days, labels = booking.room, booking.days, booking.slot_labels
            was_cancelled = booking.is_cancelled
            booking.delete()
            # Отмененное бронирование уже вернуло свои слоты
            if not was_cancelled:
                availability.release(room, days, labels)
            SpaceType.objects.filter(pk=booking.space_type_id, bookings_count__gt=0).update(
                bookings_count=F('bookings_count') - 1
            )

        logger.info(f"Бронирование {booking.booking_id} удалено")
        AvailabilityService.handle_booking_change(booking)

    @classmethod
    def update_status(cls, pk, status):
        """Прямая смена статуса без побочных эффектов"""
        if status not in cls.UPDATABLE_STATUSES:
            raise ValidationError(
                f"Status must be one of {', '.join(cls.UPDATABLE_STATUSES)}; use cancel to cancel a booking"
            )
        booking = Booking.objects.filter(pk=pk).first()
        if booking is None:
            raise NotFoundError('Booking not found')
        if booking.is_cancelled:
            raise AlreadyCancelledError('Booking is already cancelled')

        booking.status = status
        booking.save(update_fields=['status', 'updated_at'])
        logger.info(f"Статус бронирования {booking.booking_id} изменен на {status}")
        return booking
