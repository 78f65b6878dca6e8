from decimal import Decimal, ROUND_HALF_UP
import logging

from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError
from .models import Coupon

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def _restricted_to(related_manager, pk):
    """True, если список применимости задан и pk в него не входит"""
    ids = set(related_manager.values_list('pk', flat=True))
    return bool(ids) and pk not in ids


def calculate_discount(coupon, amount):
    """Скидка купона для суммы (без проверок применимости)"""
    amount = Decimal(str(amount))
    if coupon.discount_type.lower() == Coupon.TYPE_AMOUNT.lower():
        discount = coupon.discount_value
    elif coupon.discount_type.lower() == Coupon.TYPE_PERCENTAGE.lower():
        discount = amount * coupon.discount_value / Decimal(100)
        if coupon.max_discount and discount > coupon.max_discount:
            discount = coupon.max_discount
    else:
        discount = Decimal('0')
    return Decimal(discount).quantize(CENTS, rounding=ROUND_HALF_UP)


def apply_coupon(code, amount, user_id=None, room_id=None, space_type_id=None):
    """
    Расчет скидки по купону. Только котировка: used_count не меняется.
    """
    coupon = Coupon.objects.filter(code=(code or '').strip().upper(), is_active=True).first()
    if coupon is None:
        raise NotFoundError('Coupon not found or inactive')

    amount = Decimal(str(amount))
    if timezone.now() > coupon.expiry_date:
        raise ValidationError('Coupon has expired')
    if coupon.used_count >= coupon.usage_limit:
        raise ValidationError('Coupon usage limit reached')
    if amount < coupon.min_purchase_amount:
        raise ValidationError(f"Minimum purchase amount for this coupon is {coupon.min_purchase_amount}")
    if _restricted_to(coupon.applicable_users, user_id):
        raise ValidationError('Coupon not valid for this user')
    if _restricted_to(coupon.applicable_rooms, room_id):
        raise ValidationError('Coupon not valid for this room')
    if _restricted_to(coupon.applicable_space_types, space_type_id):
        raise ValidationError('Coupon not valid for this space type')

    discount = calculate_discount(coupon, amount)
    discounted_amount = max(amount - discount, Decimal('0'))
    logger.info(f"Купон {coupon.code} применен: сумма {amount}, скидка {discount}")
    return {
        'discount': discount,
        'discountedAmount': discounted_amount,
        'couponCode': coupon.code,
    }
