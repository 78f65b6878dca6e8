from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator


class RewardSetting(models.Model):
    """Настройки программы бонусных баллов (единственная запись)"""

    SINGLETON_PK = 1

    point_to_currency_rate = models.PositiveIntegerField(
        default=10,
        validators=[MinValueValidator(1)],
        verbose_name='Баллов за единицу валюты'
    )
    points_per_booking = models.PositiveIntegerField(
        default=5,
        validators=[MinValueValidator(1)],
        verbose_name='Баллов за бронирование'
    )
    min_booking_amount_for_points = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=1000,
        validators=[MinValueValidator(0)],
        verbose_name='Минимальная сумма для начисления'
    )
    max_points_redeem_percentage = models.PositiveIntegerField(
        default=20,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        verbose_name='Максимальный процент оплаты баллами'
    )
    points_expiry_days = models.PositiveIntegerField(
        default=365,
        verbose_name='Срок жизни баллов (дни)',
        help_text='0 - баллы не сгорают'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'reward_settings'
        verbose_name = 'Настройки бонусов'
        verbose_name_plural = 'Настройки бонусов'

    def __str__(self):
        return f"1 = {self.point_to_currency_rate} pts, {self.points_per_booking} pts/booking"

    @classmethod
    def load(cls):
        settings_obj, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return settings_obj


class RewardSettingChange(models.Model):
    """Журнал изменений настроек бонусов администраторами"""

    setting = models.ForeignKey(RewardSetting, on_delete=models.CASCADE, related_name='change_log')
    changed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True)
    changed_at = models.DateTimeField(auto_now_add=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    changes = models.JSONField(default=dict)
    reason = models.CharField(max_length=500, blank=True, default='')

    class Meta:
        db_table = 'reward_setting_changes'
        ordering = ['-changed_at']


class UserReward(models.Model):
    """Баланс баллов пользователя"""

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reward')
    total_points = models.PositiveIntegerField(default=0)
    lifetime_earned = models.PositiveIntegerField(default=0)
    lifetime_used = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'user_rewards'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user_id}: {self.total_points}"


class RewardHistory(models.Model):
    """Запись журнала баллов. points со знаком: начисление > 0, списание < 0"""

    ACTION_EARNED = 'Earned'
    ACTION_USED = 'Used'
    ACTION_ADMIN_ADDED = 'Admin Added'
    ACTION_ADMIN_REMOVED = 'Admin Removed'
    ACTION_EXPIRED = 'Expired'
    ACTION_CHOICES = [
        (ACTION_EARNED, 'Earned'),
        (ACTION_USED, 'Used'),
        (ACTION_ADMIN_ADDED, 'Admin Added'),
        (ACTION_ADMIN_REMOVED, 'Admin Removed'),
        (ACTION_EXPIRED, 'Expired'),
    ]

    user_reward = models.ForeignKey(UserReward, on_delete=models.CASCADE, related_name='history')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    points = models.IntegerField()
    booking = models.ForeignKey('bookings.Booking', on_delete=models.SET_NULL, null=True, blank=True)
    note = models.CharField(max_length=500, blank=True, default='')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    # Начисление уже списано как сгоревшее
    expired = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'reward_history'
        indexes = [
            models.Index(fields=['expires_at'], name='reward_hist_expires_idx'),
            models.Index(fields=['user_reward', 'action'], name='reward_hist_user_action_idx'),
        ]
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.action} {self.points}"
