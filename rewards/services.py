from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import InsufficientPointsError, NotFoundError, ValidationError
from .models import RewardHistory, RewardSetting, RewardSettingChange, UserReward

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


class RewardService:
    """
    Сервис бонусных баллов: начисление, списание, сгорание, скидка
    """

    SETTINGS_FIELDS = (
        'point_to_currency_rate',
        'points_per_booking',
        'min_booking_amount_for_points',
        'max_points_redeem_percentage',
        'points_expiry_days',
    )
    ADMIN_ACTIONS = (RewardHistory.ACTION_ADMIN_ADDED, RewardHistory.ACTION_ADMIN_REMOVED)

    @classmethod
    def get_settings(cls):
        """Настройки загружаются заново на каждую операцию"""
        return RewardSetting.load()

    @classmethod
    def update_settings(cls, update_data, admin_user, ip_address=None, reason=''):
        """
        Обновляет настройки и пишет запись в журнал изменений
        """
        updates = {key: value for key, value in update_data.items() if key in cls.SETTINGS_FIELDS}

        # Бизнес-минимум: хотя бы один балл за бронирование
        if 'points_per_booking' in updates:
            updates['points_per_booking'] = max(int(updates['points_per_booking']), 1)
        if 'point_to_currency_rate' in updates and int(updates['point_to_currency_rate']) < 1:
            raise ValidationError('pointToCurrencyRate must be at least 1')
        if 'max_points_redeem_percentage' in updates and not 0 <= int(updates['max_points_redeem_percentage']) <= 100:
            raise ValidationError('maxPointsRedeemPercentage must be between 0 and 100')
        if 'points_expiry_days' in updates and int(updates['points_expiry_days']) < 0:
            raise ValidationError('pointsExpiryDays must not be negative')
        if 'min_booking_amount_for_points' in updates and Decimal(updates['min_booking_amount_for_points']) < 0:
            raise ValidationError('minBookingAmountForPoints must not be negative')

        with transaction.atomic():
            settings_obj = RewardSetting.objects.select_for_update().get(pk=cls.get_settings().pk)
            for key, value in updates.items():
                setattr(settings_obj, key, value)
            settings_obj.save()
            RewardSettingChange.objects.create(
                setting=settings_obj,
                changed_by=admin_user,
                ip_address=ip_address,
                changes={key: str(value) for key, value in updates.items()},
                reason=reason or '',
            )

        logger.info(f"Настройки бонусов изменены пользователем {admin_user.pk}: {updates}")
        return settings_obj

    @classmethod
    def get_account(cls, user):
        account, _ = UserReward.objects.get_or_create(user=user)
        return account

    @classmethod
    def add_points(cls, user, points, action=RewardHistory.ACTION_EARNED, booking=None,
                   note=None, created_by=None, ip_address=None, expires=True):
        """
        Начисляет баллы. Срок жизни берется из настроек (0 - бессрочно)
        """
        points = int(points)
        if points <= 0:
            raise ValidationError('Points must be a positive number')

        settings_obj = cls.get_settings()
        expires_at = None
        if expires and settings_obj.points_expiry_days > 0:
            expires_at = timezone.now() + timedelta(days=settings_obj.points_expiry_days)

        with transaction.atomic():
            account = cls.get_account(user)
            UserReward.objects.filter(pk=account.pk).update(
                total_points=F('total_points') + points,
                lifetime_earned=F('lifetime_earned') + points,
            )
            RewardHistory.objects.create(
                user_reward=account,
                action=action,
                points=points,
                booking=booking,
                note=note or 'Points earned',
                created_by=created_by or user,
                ip_address=ip_address,
                expires_at=expires_at,
            )

        account.refresh_from_db()
        logger.info(f"Пользователю {user.pk} начислено {points} баллов ({action})")
        return account

    @classmethod
    def deduct_points(cls, user, points, action=RewardHistory.ACTION_USED, booking=None,
                      note=None, created_by=None, ip_address=None):
        """
        Списывает баллы условным UPDATE: баланс не может уйти в минус
        """
        points = int(points)
        if points <= 0:
            raise ValidationError('Points must be a positive number')

        with transaction.atomic():
            account = cls.get_account(user)
            updated = UserReward.objects.filter(pk=account.pk, total_points__gte=points).update(
                total_points=F('total_points') - points,
                lifetime_used=F('lifetime_used') + points,
            )
            if not updated:
                raise InsufficientPointsError('Insufficient reward points')
            RewardHistory.objects.create(
                user_reward=account,
                action=action,
                points=-points,
                booking=booking,
                note=note or 'Points used',
                created_by=created_by or (None if action == RewardHistory.ACTION_EXPIRED else user),
                ip_address=ip_address,
            )

        account.refresh_from_db()
        logger.info(f"У пользователя {user.pk} списано {points} баллов ({action})")
        return account

    @classmethod
    def expire_points(cls, account):
        """
        Списывает сгоревшие начисления. Каждая запись помечается условным
        UPDATE по флагу expired, поэтому одно начисление не сгорает дважды.
        """
        now = timezone.now()
        with transaction.atomic():
            due = account.history.filter(
                action=RewardHistory.ACTION_EARNED,
                expired=False,
                expires_at__isnull=False,
                expires_at__lte=now,
            ).values_list('pk', 'points')

            expired_total = 0
            for entry_id, points in due:
                if RewardHistory.objects.filter(pk=entry_id, expired=False).update(expired=True):
                    expired_total += points
            if not expired_total:
                return 0

            account.refresh_from_db()
            to_deduct = min(expired_total, account.total_points)
            if to_deduct > 0:
                cls.deduct_points(
                    account.user,
                    to_deduct,
                    action=RewardHistory.ACTION_EXPIRED,
                    note='Points expired',
                )

        logger.info(f"У пользователя {account.user_id} сгорело {to_deduct} баллов")
        return to_deduct

    @classmethod
    def get_user_points(cls, user):
        """
        Баланс пользователя с проверкой сгоревших баллов при чтении
        """
        account = cls.get_account(user)
        with transaction.atomic():
            locked = UserReward.objects.select_for_update().get(pk=account.pk)
            cls.expire_points(locked)
        account.refresh_from_db()
        return account

    @classmethod
    def calculate_discount(cls, user, booking_amount):
        """
        Сколько баллов можно списать за бронирование и какую скидку это даст
        """
        settings_obj = cls.get_settings()
        account = cls.get_user_points(user)

        amount = Decimal(str(booking_amount))
        rate = Decimal(settings_obj.point_to_currency_rate)
        max_discount_amount = amount * Decimal(settings_obj.max_points_redeem_percentage) / Decimal(100)
        max_points_allowed = int(max_discount_amount * rate)

        points_to_use = min(account.total_points, max_points_allowed)
        discount_amount = (Decimal(points_to_use) / rate).quantize(CENTS, rounding=ROUND_HALF_UP)

        return {
            'points_to_use': points_to_use,
            'discount_amount': discount_amount,
            'remaining_points': account.total_points - points_to_use,
        }

    @classmethod
    def points_to_currency(cls, points, settings_obj=None):
        settings_obj = settings_obj or cls.get_settings()
        return (Decimal(int(points)) / Decimal(settings_obj.point_to_currency_rate)).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )

    @classmethod
    def modify_user_points(cls, user, points, action, note='', admin_user=None, ip_address=None):
        """
        Ручная корректировка баланса администратором
        """
        if action not in cls.ADMIN_ACTIONS:
            raise ValidationError('Invalid action')

        if action == RewardHistory.ACTION_ADMIN_ADDED:
            return cls.add_points(
                user, points, action=action, note=note or 'Points added by admin',
                created_by=admin_user, ip_address=ip_address, expires=False,
            )
        return cls.deduct_points(
            user, points, action=action, note=note or 'Points removed by admin',
            created_by=admin_user, ip_address=ip_address,
        )

    @classmethod
    def get_all_users_rewards(cls, user_id=None, page=1, limit=10):
        queryset = UserReward.objects.select_related('user').order_by('-created_at')
        if user_id:
            queryset = queryset.filter(user_id=user_id)
            if not queryset.exists():
                raise NotFoundError('Reward account not found')

        page = max(int(page), 1)
        limit = max(int(limit), 1)
        offset = (page - 1) * limit
        total = queryset.count()
        return {
            'data': list(queryset[offset:offset + limit]),
            'meta': {
                'total': total,
                'page': page,
                'limit': limit,
                'totalPages': (total + limit - 1) // limit,
            },
        }

    @classmethod
    def expire_all_points(cls):
        """Проход по всем пользователям с просроченными начислениями"""
        now = timezone.now()
        accounts = UserReward.objects.filter(
            history__action=RewardHistory.ACTION_EARNED,
            history__expired=False,
            history__expires_at__lte=now,
        ).select_related('user').distinct()

        processed = 0
        for account in accounts:
            cls.get_user_points(account.user)
            processed += 1
        return processed
