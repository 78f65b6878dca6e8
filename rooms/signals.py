from django.db.models.signals import post_save, post_delete, pre_save
from django.dispatch import receiver
import logging

from bookings.models import Booking
from .cache import AvailabilityCache
from .models import Room, SpaceType
from .services import AvailabilityService

logger = logging.getLogger(__name__)

# Для отслеживания изменений в бронированиях
booking_old_dates = {}


@receiver(pre_save, sender=Booking)
def store_old_booking_dates(sender, instance, **kwargs):
    """
    Сохраняет старые даты бронирования перед обновлением
    """
    if instance.pk:
        old_booking = Booking.objects.filter(pk=instance.pk).only('start_date', 'end_date').first()
        if old_booking is not None:
            booking_old_dates[instance.pk] = AvailabilityService.get_affected_dates_from_booking(old_booking)


@receiver(post_save, sender=Booking)
def on_booking_save(sender, instance, created, **kwargs):
    """
    Обработчик изменения бронирования (новые бронирования инвалидирует сервис)
    """
    old_dates = booking_old_dates.pop(instance.pk, None)
    if not created:
        AvailabilityService.handle_booking_change(instance, old_dates)


@receiver(post_save, sender=Room)
@receiver(post_delete, sender=Room)
def on_room_change(sender, instance, **kwargs):
    """
    Обработчик изменений комнаты
    """
    AvailabilityService.handle_room_change(instance.pk)


@receiver(post_save, sender=SpaceType)
def on_space_type_change(sender, instance, created, **kwargs):
    """
    Смена allowed_slots меняет сетку доступности всех комнат типа
    """
    if created:
        return
    room_ids = list(instance.rooms.values_list('pk', flat=True))
    logger.info(f"Изменен тип пространства {instance.pk}, комнат к инвалидации: {len(room_ids)}")
    AvailabilityCache.invalidate_multiple_rooms(room_ids)
