from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from core.exceptions import NotFoundError, ValidationError
from rooms.models import Room, SpaceType
from .models import Coupon
from .services import apply_coupon, calculate_discount

User = get_user_model()


class CouponServiceTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.space_type = SpaceType.objects.create(name='Co-working', allowed_slots=['09:00AM'])
        self.room = Room.objects.create(name='Desk', location='Floor 1', space_type=self.space_type)

    def make_coupon(self, **overrides):
        data = {
            'code': 'save10',
            'discount_type': Coupon.TYPE_AMOUNT,
            'discount_value': Decimal('100'),
            'expiry_date': timezone.now() + timedelta(days=30),
            'usage_limit': 5,
        }
        data.update(overrides)
        return Coupon.objects.create(**data)

    def test_code_is_uppercased(self):
        self.assertEqual(self.make_coupon().code, 'SAVE10')

    def test_amount_discount(self):
        self.make_coupon()

        result = apply_coupon('SAVE10', 1000)

        self.assertEqual(result, {
            'discount': Decimal('100.00'),
            'discountedAmount': Decimal('900.00'),
            'couponCode': 'SAVE10',
        })

    def test_code_lookup_is_case_insensitive(self):
        self.make_coupon()
        self.assertEqual(apply_coupon(' save10 ', 1000)['couponCode'], 'SAVE10')

    def test_percentage_discount_capped(self):
        coupon = self.make_coupon(
            discount_type=Coupon.TYPE_PERCENTAGE, discount_value=Decimal('50'), max_discount=Decimal('300')
        )
        self.assertEqual(calculate_discount(coupon, 1000), Decimal('300.00'))
        self.assertEqual(calculate_discount(coupon, 400), Decimal('200.00'))

    def test_discount_type_matched_case_insensitively(self):
        coupon = Coupon(discount_type='percentage', discount_value=Decimal('10'))
        self.assertEqual(calculate_discount(coupon, 250), Decimal('25.00'))

    def test_discounted_amount_never_negative(self):
        self.make_coupon(discount_value=Decimal('500'))
        self.assertEqual(apply_coupon('SAVE10', 200)['discountedAmount'], Decimal('0'))

    def test_unknown_or_inactive_coupon(self):
        self.make_coupon(is_active=False)
        with self.assertRaises(NotFoundError):
            apply_coupon('SAVE10', 1000)
        with self.assertRaises(NotFoundError):
            apply_coupon('MISSING', 1000)

    def test_expired_coupon(self):
        self.make_coupon(expiry_date=timezone.now() - timedelta(minutes=1))
        with self.assertRaisesMessage(ValidationError, 'Coupon has expired'):
            apply_coupon('SAVE10', 1000)

    def test_usage_limit_reached(self):
        self.make_coupon(usage_limit=2, used_count=2)
        with self.assertRaisesMessage(ValidationError, 'Coupon usage limit reached'):
            apply_coupon('SAVE10', 1000)

    def test_minimum_purchase_amount(self):
        self.make_coupon(min_purchase_amount=Decimal('500'))
        with self.assertRaises(ValidationError):
            apply_coupon('SAVE10', 499)
        self.assertEqual(apply_coupon('SAVE10', 500)['discount'], Decimal('100.00'))

    def test_restricted_to_users(self):
        other = User.objects.create_user(email='other@example.com', password='testpass123')
        coupon = self.make_coupon()
        coupon.applicable_users.add(other)

        with self.assertRaisesMessage(ValidationError, 'Coupon not valid for this user'):
            apply_coupon('SAVE10', 1000, user_id=self.user.pk)
        self.assertEqual(apply_coupon('SAVE10', 1000, user_id=other.pk)['couponCode'], 'SAVE10')

    def test_restricted_to_rooms_and_space_types(self):
        other_room = Room.objects.create(name='Other', location='Floor 2', space_type=self.space_type)
        coupon = self.make_coupon()
        coupon.applicable_rooms.add(self.room)
        coupon.applicable_space_types.add(self.space_type)

        with self.assertRaisesMessage(ValidationError, 'Coupon not valid for this room'):
            apply_coupon('SAVE10', 1000, room_id=other_room.pk, space_type_id=self.space_type.pk)
        result = apply_coupon('SAVE10', 1000, room_id=self.room.pk, space_type_id=self.space_type.pk)
        self.assertEqual(result['discount'], Decimal('100.00'))

    def test_quote_does_not_consume_usage(self):
        coupon = self.make_coupon(usage_limit=1)
        apply_coupon('SAVE10', 1000)
        apply_coupon('SAVE10', 1000)
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 0)


class CouponAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='adminpass123', role='admin')
        self.expiry = (timezone.now() + timedelta(days=10)).isoformat()

    def test_admin_creates_coupon(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/coupons/', {
            'code': 'summer',
            'discount_type': 'Percentage',
            'discount_value': '15.00',
            'expiry_date': self.expiry,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'SUMMER')
        self.assertEqual(response.data['used_count'], 0)

    def test_percentage_over_100_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/coupons/', {
            'code': 'HUGE',
            'discount_type': 'Percentage',
            'discount_value': '150.00',
            'expiry_date': self.expiry,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_code_rejected(self):
        Coupon.objects.create(code='SUMMER', discount_type='Amount', discount_value=10, expiry_date=self.expiry)
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/coupons/', {
            'code': 'summer',
            'discount_type': 'Amount',
            'discount_value': '10.00',
            'expiry_date': self.expiry,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_cannot_manage_coupons(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.get('/api/coupons/').status_code, status.HTTP_403_FORBIDDEN)

    def test_apply_coupon(self):
        Coupon.objects.create(code='SUMMER', discount_type='Amount', discount_value=50, expiry_date=self.expiry)
        self.client.force_authenticate(self.user)

        response = self.client.post('/api/coupons/apply/', {
            'couponCode': 'summer', 'totalAmount': '200.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {
            'discount': '50.00',
            'discountedAmount': '150.00',
            'couponCode': 'SUMMER',
        })

    def test_apply_unknown_coupon(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/coupons/apply/', {
            'couponCode': 'NOPE', 'totalAmount': '200.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')
