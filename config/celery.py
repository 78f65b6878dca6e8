import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("room_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # Списание сгоревших баллов - раз в сутки ночью
    "expire-reward-points": {
        "task": "rewards.expire_points",
        "schedule": crontab(minute=30, hour=2),
    },
}
