from django.conf import settings
from django.core.cache import cache
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class AvailabilityCache:
    """
    Класс для работы с кешем доступности комнат.

    Каждая запись хранит отметку дня, прочитанную до расчета. Инвалидация
    дня увеличивает отметку, инвалидация комнаты - версию ключей, поэтому
    результат расчета, записанный после инвалидации, не отдается.
    """

    # Префикс для ключей кеша доступности
    AVAILABILITY_KEY_PREFIX = 'avail'

    # Префикс для версии кеша комнаты
    VERSION_KEY_PREFIX = 'avail_version'

    # Префикс для отметки инвалидации дня
    DAY_STAMP_KEY_PREFIX = 'avail_stamp'

    @classmethod
    def default_ttl(cls):
        return getattr(settings, 'AVAILABILITY_CACHE_TTL', 60)

    @staticmethod
    def _date_str(date):
        if isinstance(date, datetime):
            return date.strftime('%Y-%m-%d')
        return str(date)

    @classmethod
    def get_version(cls, room_id):
        """
        Текущая версия кеша комнаты. Смена версии делает недоступными
        все ранее сохраненные дни без перебора ключей.
        """
        return cache.get_or_set(f"{cls.VERSION_KEY_PREFIX}:{room_id}", 1, timeout=None)

    @classmethod
    def get_day_stamp(cls, room_id, date):
        return cache.get(f"{cls.DAY_STAMP_KEY_PREFIX}:{room_id}:{cls._date_str(date)}", 0)

    @classmethod
    def snapshot(cls, room_id, date):
        """
        Версия комнаты и отметка дня. Берется до расчета доступности
        и передается в set_availability.
        """
        return cls.get_version(room_id), cls.get_day_stamp(room_id, date)

    @classmethod
    def get_availability_key(cls, room_id, date, version=None):
        """
        Генерирует ключ для кеша доступности комнаты на конкретную дату
        :param room_id: id комнаты
        :param date: дата в формате YYYY-MM-DD или datetime.date
        :return: строковый ключ
        """
        if version is None:
            version = cls.get_version(room_id)
        return f"{cls.AVAILABILITY_KEY_PREFIX}:{room_id}:v{version}:{cls._date_str(date)}"

    @classmethod
    def set_availability(cls, room_id, date, availability_data, ttl=None, snapshot=None):
        """
        Сохраняет данные о доступности в кеш
        :param room_id: id комнаты
        :param date: дата
        :param availability_data: данные о доступности
        :param ttl: время жизни в секундах
        :param snapshot: (версия, отметка дня), прочитанные до расчета
        """
        if ttl is None:
            ttl = cls.default_ttl()

        try:
            version, stamp = snapshot or cls.snapshot(room_id, date)
            key = cls.get_availability_key(room_id, date, version)
            cache.set(key, {'stamp': stamp, 'data': availability_data}, timeout=ttl)
            logger.debug(f"Кеш доступности сохранен: {key}, TTL: {ttl}с")
        except Exception as e:
            logger.error(f"Ошибка сохранения кеша доступности {room_id}/{date}: {str(e)}")

    @classmethod
    def get_availability(cls, room_id, date):
        """
        Получает данные о доступности из кеша
        :return: данные о доступности или None
        """
        try:
            key = cls.get_availability_key(room_id, date)
            entry = cache.get(key)
            if entry is None:
                return None
            if entry.get('stamp') != cls.get_day_stamp(room_id, date):
                logger.debug(f"Устаревшая запись кеша доступности отброшена: {key}")
                return None
            logger.debug(f"Кеш доступности получен: {key}")
            return entry['data']
        except Exception as e:
            logger.error(f"Ошибка получения кеша доступности {room_id}/{date}: {str(e)}")
            return None

    @classmethod
    def _bump(cls, key, initial):
        try:
            cache.incr(key)
        except ValueError:
            cache.set(key, initial, timeout=None)

    @classmethod
    def invalidate_room_availability(cls, room_id, dates=None):
        """
        Инвалидирует кеш доступности для комнаты
        :param room_id: id комнаты
        :param dates: конкретные даты для инвалидации (опционально)
        """
        try:
            if dates:
                version = cls.get_version(room_id)
                for date in dates:
                    cls._bump(f"{cls.DAY_STAMP_KEY_PREFIX}:{room_id}:{cls._date_str(date)}", 1)
                cache.delete_many([cls.get_availability_key(room_id, date, version) for date in dates])
                logger.debug(f"Кеш доступности комнаты {room_id} инвалидирован для {len(dates)} дат")
            else:
                # Все даты комнаты: просто сдвигаем версию
                cls._bump(f"{cls.VERSION_KEY_PREFIX}:{room_id}", 2)
                logger.debug(f"Весь кеш доступности инвалидирован для комнаты: {room_id}")
        except Exception as e:
            logger.error(f"Ошибка инвалидации кеша для комнаты {room_id}: {str(e)}")

    @classmethod
    def invalidate_multiple_rooms(cls, room_ids):
        """
        Инвалидирует кеш доступности для нескольких комнат
        """
        for room_id in room_ids:
            cls.invalidate_room_availability(room_id)
