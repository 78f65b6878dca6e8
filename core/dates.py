from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings

from .exceptions import ValidationError

DATE_FORMAT = '%Y-%m-%d'
TIMEZONE_HEADER = 'HTTP_X_TIMEZONE'


def parse_date(value, field_name='date'):
    """Разбирает календарную дату YYYY-MM-DD"""
    if not value:
        raise ValidationError(f'Параметр {field_name} обязателен (формат: YYYY-MM-DD)')
    try:
        return datetime.strptime(str(value), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f'Неверный формат {field_name}. Используйте YYYY-MM-DD')


def parse_date_range(start_value, end_value=None):
    """
    Возвращает (start, end); end по умолчанию равен start.
    Конец раньше начала - ошибка, а не пустой диапазон.
    """
    start = parse_date(start_value, 'start_date')
    end = parse_date(end_value, 'end_date') if end_value else start
    if end < start:
        raise ValidationError('Invalid start/end date: end_date is before start_date')
    return start, end


def iter_days(start, end):
    """Все календарные дни в [start, end] включительно"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def request_timezone(request):
    """Часовой пояс клиента из заголовка X-Timezone"""
    name = request.META.get(TIMEZONE_HEADER) or settings.DEFAULT_CLIENT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f'Неизвестный часовой пояс: {name}')
