from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from .models import RewardHistory, RewardSettingChange
from .services import RewardService

User = get_user_model()


class RewardAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='adminpass123', role='admin')

    def test_my_rewards(self):
        RewardService.add_points(self.user, 25)
        self.client.force_authenticate(self.user)

        response = self.client.get('/api/rewards/me/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalPoints'], 25)
        self.assertEqual(response.data['lifetimePoints'], {'earned': 25, 'used': 0})
        self.assertEqual(response.data['pointValue'], '0.10')
        self.assertEqual(response.data['pointsPerBooking'], 5)
        self.assertEqual(len(response.data['history']), 1)

    def test_my_rewards_requires_authentication(self):
        response = self.client.get('/api/rewards/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_modify_points_admin_only(self):
        payload = {'userId': self.user.pk, 'points': 30, 'action': 'Admin Added', 'note': 'Welcome bonus'}

        self.client.force_authenticate(self.user)
        response = self.client.post('/api/rewards/modify/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/rewards/modify/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['total_points'], 30)
        entry = RewardHistory.objects.get(user_reward__user=self.user)
        self.assertEqual(entry.created_by, self.admin)

    def test_modify_points_unknown_user(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/rewards/modify/', {
            'userId': 999999, 'points': 5, 'action': 'Admin Added',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_remove_more_points_than_balance(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/rewards/modify/', {
            'userId': self.user.pk, 'points': 5, 'action': 'Admin Removed',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'insufficient_points')

    def test_all_users_rewards(self):
        RewardService.add_points(self.user, 10)
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/rewards/users/?page=1&limit=5')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['users'][0]['email'], 'user@example.com')

        response = self.client.get('/api/rewards/users/?userId=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_settings(self):
        self.client.force_authenticate(self.user)
        response = self.client.get('/api/rewards/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pointToCurrencyRate'], 10)
        self.assertEqual(response.data['maxPointsRedeemPercentage'], 20)

    def test_update_settings(self):
        self.client.force_authenticate(self.user)
        response = self.client.put('/api/rewards/settings/', {'pointsPerBooking': 7}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.put('/api/rewards/settings/', {
            'pointsPerBooking': 7, 'reason': 'Spring promo',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pointsPerBooking'], 7)
        change = RewardSettingChange.objects.get()
        self.assertEqual(change.reason, 'Spring promo')
        self.assertEqual(change.ip_address, '127.0.0.1')

    def test_update_settings_invalid_percentage(self):
        self.client.force_authenticate(self.admin)
        response = self.client.put('/api/rewards/settings/', {'maxPointsRedeemPercentage': 120}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
