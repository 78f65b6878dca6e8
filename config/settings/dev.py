"""Настройки для разработки и тестов. Не использовать в production."""

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']

for _logger in ('core', 'auth_app', 'rooms', 'bookings', 'rewards', 'coupons'):
    LOGGING['loggers'][_logger]['level'] = os.environ.get('LOG_LEVEL', 'DEBUG')  # noqa: F405
