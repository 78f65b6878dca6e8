from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator


class Coupon(models.Model):
    """Купон на скидку. Пустые списки применимости - без ограничений"""

    TYPE_AMOUNT = 'Amount'
    TYPE_PERCENTAGE = 'Percentage'
    TYPE_CHOICES = [
        (TYPE_AMOUNT, 'Amount'),
        (TYPE_PERCENTAGE, 'Percentage'),
    ]

    code = models.CharField(max_length=50, unique=True, verbose_name='Код')
    description = models.TextField(blank=True, default='')
    discount_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    discount_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(1)]
    )
    max_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    min_purchase_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    expiry_date = models.DateTimeField()
    usage_limit = models.PositiveIntegerField(default=1)
    used_count = models.PositiveIntegerField(default=0)
    applicable_space_types = models.ManyToManyField('rooms.SpaceType', blank=True, related_name='coupons')
    applicable_rooms = models.ManyToManyField('rooms.Room', blank=True, related_name='coupons')
    applicable_users = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='coupons')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'coupons'
        ordering = ['-created_at']

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)
