# Celery-приложение поднимается вместе с Django, чтобы shared_task были зарегистрированы
from .celery import app as celery_app  # noqa: F401
