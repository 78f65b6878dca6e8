import logging

from celery import shared_task

from .services import RewardService

logger = logging.getLogger(__name__)


@shared_task(name='rewards.expire_points')
def expire_points():
    """
    Периодическое списание сгоревших баллов у всех пользователей.
    Чтение баланса делает то же самое, задача лишь выравнивает балансы заранее.
    """
    logger.info("Запуск списания сгоревших баллов...")
    processed = RewardService.expire_all_points()
    logger.info(f"Списание сгоревших баллов завершено, пользователей: {processed}")
    return processed
