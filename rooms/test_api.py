from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from .models import Room, RoomAvailability, SpaceType

User = get_user_model()

SLOTS = ['09:00AM', '10:00AM', '11:00AM']


class RoomAPITestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()

        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='adminpass123', role='admin')

        self.space_type = SpaceType.objects.create(name='Co-working', allowed_slots=list(SLOTS))
        self.room = Room.objects.create(
            name='API Desk',
            location='Floor 3',
            capacity=2,
            space_type=self.space_type,
        )
        self.tomorrow = (date.today() + timedelta(days=1)).isoformat()

    def test_requires_authentication(self):
        response = self.client.get('/api/rooms/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_get_rooms_list(self):
        """Тест получения списка комнат"""
        self.client.force_authenticate(self.user)
        response = self.client.get('/api/rooms/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['space_type_name'], 'Co-working')

    def test_filter_rooms_by_space_type(self):
        other = SpaceType.objects.create(name='Studio', allowed_slots=list(SLOTS))
        Room.objects.create(name='Studio 1', location='Floor 4', space_type=other)
        self.client.force_authenticate(self.user)

        response = self.client.get(f'/api/rooms/?spaceTypeId={other.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([room['name'] for room in response.data], ['Studio 1'])

    def test_get_room_detail(self):
        """Тест получения деталей комнаты"""
        self.client.force_authenticate(self.user)
        response = self.client.get(f'/api/rooms/{self.room.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], self.room.name)
        self.assertEqual(response.data['capacity'], 2)

    def test_inactive_room_hidden_from_user(self):
        self.room.is_active = False
        self.room.save()
        self.client.force_authenticate(self.user)
        response = self.client.get(f'/api/rooms/{self.room.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_room_requires_admin(self):
        payload = {'name': 'New', 'location': 'Floor 1', 'capacity': 1, 'space_type': self.space_type.pk}

        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.post('/api/rooms/', payload, format='json').status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/rooms/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'New')

    def test_create_room_invalid_capacity(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/rooms/', {
            'name': 'New', 'location': 'Floor 1', 'capacity': 0, 'space_type': self.space_type.pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_capacity_syncs_availability(self):
        day = date.today() + timedelta(days=5)
        RoomAvailability.objects.create(room=self.room, date=day, available_size=2)
        self.client.force_authenticate(self.admin)

        response = self.client.patch(f'/api/rooms/{self.room.id}/', {'capacity': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(RoomAvailability.objects.get(room=self.room, date=day).available_size, 5)

    def test_delete_room_deactivates(self):
        self.client.force_authenticate(self.admin)
        response = self.client.delete(f'/api/rooms/{self.room.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.room.refresh_from_db()
        self.assertFalse(self.room.is_active)

    def test_get_room_availability(self):
        """Тест получения доступности комнаты"""
        self.client.force_authenticate(self.user)
        response = self.client.get(
            f'/api/rooms/{self.room.id}/availability/?startDate={self.tomorrow}&endDate={self.tomorrow}'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['availability']), 1)
        day = response.data['availability'][0]
        self.assertEqual(day['availableSize'], 2)
        self.assertEqual(day['timeSlots']['09:00AM'], {'available': 2, 'booked': 0, 'isAvailable': True})

    def test_get_room_availability_invalid_date(self):
        """Тест получения доступности с неверной датой"""
        self.client.force_authenticate(self.user)
        response = self.client.get(f'/api/rooms/{self.room.id}/availability/?startDate=invalid-date')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')

    def test_get_room_availability_reversed_range(self):
        self.client.force_authenticate(self.user)
        response = self.client.get(
            f'/api/rooms/{self.room.id}/availability/?startDate=2030-01-05&endDate=2030-01-01'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_timezone_header(self):
        self.client.force_authenticate(self.user)
        response = self.client.get(
            f'/api/rooms/{self.room.id}/availability/', HTTP_X_TIMEZONE='Mars/Olympus'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SpaceTypeAPITestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='adminpass123', role='admin')

    def test_create_space_type(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/space-types/', {
            'name': 'Meeting Room',
            'allowed_slots': ['09:00AM', '10:00AM'],
            'slot_behavior': 'consecutive',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['bookings_count'], 0)

    def test_duplicate_slot_labels_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/space-types/', {
            'name': 'Broken',
            'allowed_slots': ['09:00AM', '09:00AM'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_cannot_create_space_type(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/space-types/', {'name': 'X', 'allowed_slots': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_space_type_in_use_cannot_be_deleted(self):
        space_type = SpaceType.objects.create(name='Co-working', allowed_slots=['09:00AM'])
        Room.objects.create(name='Desk', location='Floor 1', space_type=space_type)
        self.client.force_authenticate(self.admin)

        response = self.client.delete(f'/api/space-types/{space_type.pk}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_users_see_only_active_space_types(self):
        SpaceType.objects.create(name='Active', allowed_slots=['09:00AM'])
        SpaceType.objects.create(name='Hidden', allowed_slots=['09:00AM'], is_active=False)
        self.client.force_authenticate(self.user)

        response = self.client.get('/api/space-types/')
        self.assertEqual([item['name'] for item in response.data], ['Active'])
