from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Sum
from django.test import TestCase
from django.utils import timezone

from core.exceptions import InsufficientPointsError, NotFoundError, ValidationError
from .models import RewardHistory, RewardSetting, RewardSettingChange
from .services import RewardService
from .tasks import expire_points

User = get_user_model()


class RewardServiceTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='adminpass123', role='admin')

    def expire_history(self, user=None):
        RewardHistory.objects.filter(
            user_reward__user=user or self.user,
            action=RewardHistory.ACTION_EARNED,
        ).update(expires_at=timezone.now() - timedelta(days=1))

    def assertLedgerBalanced(self, user=None):
        account = RewardService.get_account(user or self.user)
        total = account.history.aggregate(total=Sum('points'))['total'] or 0
        self.assertEqual(account.total_points, total)

    def test_default_settings(self):
        settings_obj = RewardService.get_settings()
        self.assertEqual(settings_obj.pk, RewardSetting.SINGLETON_PK)
        self.assertEqual(settings_obj.point_to_currency_rate, 10)
        self.assertEqual(settings_obj.points_per_booking, 5)
        self.assertEqual(settings_obj.max_points_redeem_percentage, 20)

    def test_add_points_sets_expiry(self):
        account = RewardService.add_points(self.user, 50)

        self.assertEqual(account.total_points, 50)
        self.assertEqual(account.lifetime_earned, 50)
        entry = account.history.get()
        self.assertEqual(entry.action, RewardHistory.ACTION_EARNED)
        self.assertIsNotNone(entry.expires_at)

    def test_no_expiry_when_disabled(self):
        RewardService.update_settings({'points_expiry_days': 0}, self.admin)
        account = RewardService.add_points(self.user, 50)
        self.assertIsNone(account.history.get().expires_at)

    def test_calculate_discount(self):
        """100 баллов при сумме 1000: списываются все 100, скидка 10"""
        RewardService.add_points(self.user, 100)

        result = RewardService.calculate_discount(self.user, 1000)

        self.assertEqual(result, {
            'points_to_use': 100,
            'discount_amount': Decimal('10.00'),
            'remaining_points': 0,
        })

    def test_calculate_discount_capped_by_percentage(self):
        RewardService.add_points(self.user, 5000)

        result = RewardService.calculate_discount(self.user, 1000)

        self.assertEqual(result['points_to_use'], 2000)
        self.assertEqual(result['discount_amount'], Decimal('200.00'))
        self.assertEqual(result['remaining_points'], 3000)

    def test_deduct_points(self):
        RewardService.add_points(self.user, 30)
        account = RewardService.deduct_points(self.user, 20)

        self.assertEqual(account.total_points, 10)
        self.assertEqual(account.lifetime_used, 20)
        self.assertLedgerBalanced()

    def test_deduct_more_than_balance(self):
        RewardService.add_points(self.user, 30)

        with self.assertRaises(InsufficientPointsError):
            RewardService.deduct_points(self.user, 31)

        self.assertEqual(RewardService.get_account(self.user).total_points, 30)
        self.assertEqual(RewardService.get_account(self.user).history.count(), 1)

    def test_non_positive_points_rejected(self):
        with self.assertRaises(ValidationError):
            RewardService.add_points(self.user, 0)
        with self.assertRaises(ValidationError):
            RewardService.deduct_points(self.user, -5)

    def test_expired_points_deducted_once(self):
        RewardService.add_points(self.user, 50)
        self.expire_history()

        self.assertEqual(RewardService.get_user_points(self.user).total_points, 0)
        self.assertEqual(RewardService.get_user_points(self.user).total_points, 0)

        expired = RewardHistory.objects.filter(action=RewardHistory.ACTION_EXPIRED)
        self.assertEqual(expired.count(), 1)
        self.assertEqual(expired.get().points, -50)
        self.assertIsNone(expired.get().created_by)
        self.assertLedgerBalanced()

    def test_expiry_clamped_to_balance(self):
        RewardService.add_points(self.user, 50)
        RewardService.modify_user_points(self.user, 30, RewardHistory.ACTION_ADMIN_REMOVED, admin_user=self.admin)
        self.expire_history()

        account = RewardService.get_user_points(self.user)

        self.assertEqual(account.total_points, 0)
        self.assertEqual(RewardHistory.objects.get(action=RewardHistory.ACTION_EXPIRED).points, -20)
        self.assertLedgerBalanced()

    def test_fresh_points_survive_expiry(self):
        RewardService.add_points(self.user, 50)
        self.expire_history()
        RewardService.add_points(self.user, 20)

        self.assertEqual(RewardService.get_user_points(self.user).total_points, 20)

    def test_admin_added_points_never_expire(self):
        account = RewardService.modify_user_points(
            self.user, 40, RewardHistory.ACTION_ADMIN_ADDED, note='Bonus', admin_user=self.admin
        )

        entry = account.history.get()
        self.assertIsNone(entry.expires_at)
        self.assertEqual(entry.created_by, self.admin)
        self.assertEqual(entry.note, 'Bonus')
        self.assertEqual(RewardService.get_user_points(self.user).total_points, 40)

    def test_modify_with_invalid_action(self):
        with self.assertRaises(ValidationError):
            RewardService.modify_user_points(self.user, 10, RewardHistory.ACTION_EARNED, admin_user=self.admin)

    def test_admin_remove_more_than_balance(self):
        with self.assertRaises(InsufficientPointsError):
            RewardService.modify_user_points(self.user, 10, RewardHistory.ACTION_ADMIN_REMOVED, admin_user=self.admin)

    def test_update_settings_clamps_points_per_booking(self):
        settings_obj = RewardService.update_settings(
            {'points_per_booking': 0, 'point_to_currency_rate': 20}, self.admin,
            ip_address='127.0.0.1', reason='Promo'
        )

        self.assertEqual(settings_obj.points_per_booking, 1)
        self.assertEqual(settings_obj.point_to_currency_rate, 20)
        change = RewardSettingChange.objects.get()
        self.assertEqual(change.changed_by, self.admin)
        self.assertEqual(change.reason, 'Promo')
        self.assertEqual(change.changes['points_per_booking'], '1')

    def test_update_settings_validates_ranges(self):
        with self.assertRaises(ValidationError):
            RewardService.update_settings({'max_points_redeem_percentage': 150}, self.admin)
        with self.assertRaises(ValidationError):
            RewardService.update_settings({'point_to_currency_rate': 0}, self.admin)
        self.assertFalse(RewardSettingChange.objects.exists())

    def test_get_all_users_rewards(self):
        for index in range(3):
            user = User.objects.create_user(email=f'u{index}@example.com', password='testpass123')
            RewardService.add_points(user, 10)

        result = RewardService.get_all_users_rewards(page=1, limit=2)

        self.assertEqual(len(result['data']), 2)
        self.assertEqual(result['meta'], {'total': 3, 'page': 1, 'limit': 2, 'totalPages': 2})

    def test_get_all_users_rewards_unknown_user(self):
        with self.assertRaises(NotFoundError):
            RewardService.get_all_users_rewards(user_id=999999)

    def test_expire_points_task(self):
        other = User.objects.create_user(email='other@example.com', password='testpass123')
        RewardService.add_points(self.user, 50)
        RewardService.add_points(other, 30)
        self.expire_history(self.user)

        self.assertEqual(expire_points(), 1)

        self.assertEqual(RewardService.get_account(self.user).total_points, 0)
        self.assertEqual(RewardService.get_account(other).total_points, 30)
