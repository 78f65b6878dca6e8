"""
Хранилище занятости слотов: атомарные инкременты и декременты счетчиков
BookedSlot по каждому (комната, день, слот).
"""

import logging

from django.db import transaction
from django.db.models import F

from core.exceptions import SlotConflictError
from .models import BookedSlot, RoomAvailability

logger = logging.getLogger(__name__)


def lock_if_possible(queryset):
    """select_for_update внутри transaction.atomic(), если БД это умеет"""
    connection = transaction.get_connection(queryset.db)
    if not connection.in_atomic_block or not connection.features.has_select_for_update:
        return queryset
    return queryset.select_for_update()


def get_day(room, day, lock=False):
    """
    Возвращает RoomAvailability на день, создавая запись при первом обращении
    """
    record, created = RoomAvailability.objects.get_or_create(
        room=room,
        date=day,
        defaults={'available_size': room.capacity},
    )
    if created:
        logger.debug(f"Создана запись доступности комнаты {room.pk} на {day}")
    if lock:
        record = lock_if_possible(RoomAvailability.objects.filter(pk=record.pk)).get()
    return record


def reserve(room, days, labels):
    """
    Занимает по одной единице каждого слота в каждом дне.

    Каждый инкремент - условный UPDATE (count < available_size), поэтому
    проверка и запись не разделены гонкой. Если хотя бы один слот уже
    заполнен, бросается SlotConflictError и транзакция откатывает все
    предыдущие инкременты.
    """
    if not labels:
        return

    with transaction.atomic():
        for day in sorted(days):
            record = get_day(room, day)
            for label in labels:
                BookedSlot.objects.get_or_create(availability=record, label=label)
                updated = BookedSlot.objects.filter(
                    availability=record,
                    label=label,
                    count__lt=record.available_size,
                ).update(count=F('count') + 1)
                if not updated:
                    logger.warning(f"Слот {label} комнаты {room.pk} заполнен на {day}, резервирование отменено")
                    raise SlotConflictError(day, label)

    logger.info(f"Зарезервированы слоты {labels} комнаты {room.pk} на {len(days)} дн.")


def release(room, days, labels):
    """
    Освобождает слоты. Счетчик не уходит ниже нуля: повторное
    освобождение ничего не делает.
    """
    if not labels or not days:
        return 0

    with transaction.atomic():
        released = BookedSlot.objects.filter(
            availability__room=room,
            availability__date__in=list(days),
            label__in=list(labels),
            count__gt=0,
        ).update(count=F('count') - 1)

    logger.info(f"Освобождено {released} счетчиков слотов комнаты {room.pk}")
    return released
