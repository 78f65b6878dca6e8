"""
Доменные ошибки бронирования и обработчик исключений для DRF.

Сервисы бросают наследников BookingError, а api_exception_handler
превращает их в ответы вида {"error": ..., "code": ...}.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Базовая доменная ошибка"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = 'error'
    default_message = 'Ошибка обработки запроса'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        data = {'error': self.message, 'code': self.code}
        data.update(self.details)
        return data


class ValidationError(BookingError):
    code = 'validation_error'
    default_message = 'Некорректные данные запроса'


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'
    default_message = 'Объект не найден'


class InvalidSlotError(ValidationError):
    code = 'invalid_slot'
    default_message = 'Слот недоступен для этого типа пространства'


class InsufficientSlotsError(ValidationError):
    code = 'insufficient_slots'
    default_message = 'Недостаточно слотов для запрошенной длительности'


class InvalidPresetError(ValidationError):
    code = 'invalid_preset'
    default_message = 'Неизвестный пресет времени'


class InvalidTimeFormatError(ValidationError):
    code = 'invalid_time_format'
    default_message = 'Неверный формат времени'


class SlotConflictError(BookingError):
    """Слот уже занят в один из дней запрошенного периода"""

    status_code = status.HTTP_409_CONFLICT
    code = 'slot_conflict'

    def __init__(self, day, slot, message=None):
        self.day = day
        self.slot = slot
        super().__init__(
            message or f"Slot '{slot}' is already booked on {day.isoformat()}",
            day=day.isoformat(),
            slot=slot,
        )


class AlreadyCancelledError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'already_cancelled'
    default_message = 'Бронирование уже отменено'


class InsufficientPointsError(BookingError):
    code = 'insufficient_points'
    default_message = 'Недостаточно бонусных баллов'


def api_exception_handler(exc, context):
    """
    Обработчик исключений REST_FRAMEWORK['EXCEPTION_HANDLER']
    """
    if isinstance(exc, BookingError):
        return Response(exc.as_dict(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.error(
        f"Необработанная ошибка в {view.__class__.__name__ if view else 'unknown view'}: {exc}",
        exc_info=exc,
    )
    return Response(
        {'error': 'Internal server error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
