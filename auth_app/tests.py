from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

User = get_user_model()


class AuthAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email='user@example.com', password='testpass123')

    def login(self, email='user@example.com', password='testpass123'):
        return self.client.post('/api/auth/login/', {'email': email, 'password': password}, format='json')

    def test_register(self):
        """Регистрация без username: используется email"""
        response = self.client.post('/api/auth/register/', {
            'email': 'new@example.com',
            'password': 'newpass123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(pk=response.data['id'])
        self.assertEqual(user.username, 'new@example.com')
        self.assertEqual(user.role, 'user')
        self.assertTrue(user.check_password('newpass123'))

    def test_register_duplicate_email(self):
        response = self.client.post('/api/auth/register/', {
            'email': 'user@example.com',
            'password': 'whatever123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login(self):
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_wrong_password(self):
        response = self.login(password='wrong')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_with_token(self):
        access = self.login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')

        response = self.client.get('/api/auth/me/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'user@example.com')
        self.assertEqual(response.data['role'], 'user')

    def test_logout_blacklists_refresh_token(self):
        tokens = self.login().data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        response = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_without_refresh(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/auth/logout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_list_admin_only(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.get('/api/auth/users/').status_code, status.HTTP_403_FORBIDDEN)

        admin = User.objects.create_user(email='admin@example.com', password='adminpass123', role='admin')
        self.client.force_authenticate(admin)
        response = self.client.get('/api/auth/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
