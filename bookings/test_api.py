from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from rooms.models import Room, SpaceType
from .models import Booking

User = get_user_model()

SLOTS = ['09:00AM', '10:00AM', '11:00AM', '12:00PM', '01:00PM', '02:00PM']


class BookingAPITestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()

        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.other = User.objects.create_user(email='other@example.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@example.com', password='adminpass123', role='admin')

        self.space_type = SpaceType.objects.create(name='Meeting Room', allowed_slots=list(SLOTS) + [
            '03:00PM', '04:00PM', '05:00PM', '06:00PM',
        ])
        self.room = Room.objects.create(name='Board', location='Floor 2', space_type=self.space_type)
        self.day = (date.today() + timedelta(days=10)).isoformat()

    def payload(self, **overrides):
        data = {
            'roomId': self.room.pk,
            'spaceTypeId': self.space_type.pk,
            'start_date': self.day,
            'timeRanges': ['Morning'],
            'guests': 2,
            'totalAmount': '1200.00',
            'serviceFeeAndTax': '50.00',
        }
        data.update(overrides)
        return data

    def create(self, user=None, **overrides):
        self.client.force_authenticate(user or self.user)
        return self.client.post('/api/bookings/', self.payload(**overrides), format='json')

    def test_create_booking(self):
        response = self.create()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['booking_id'], r'^M\d{8}$')
        self.assertEqual(response.data['status'], 'Pending')
        self.assertEqual(response.data['start_time'], '09:00AM')
        self.assertEqual(response.data['start_date'], self.day)
        self.assertEqual(response.data['end_date'], self.day)
        self.assertEqual(response.data['rewardPointsEarned'], 5)
        self.assertEqual(response.data['pointsPerBooking'], 5)
        self.assertEqual(
            [slot['label'] for slot in response.data['time_slots']],
            ['09:00AM', '10:00AM', '11:00AM', '12:00PM']
        )

    def test_double_booking_returns_conflict(self):
        self.assertEqual(self.create().status_code, status.HTTP_201_CREATED)

        response = self.create(user=self.other)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'slot_conflict')
        self.assertEqual(response.data['slot'], '09:00AM')
        self.assertEqual(response.data['day'], self.day)
        self.assertEqual(Booking.objects.count(), 1)

    def test_invalid_preset_for_meeting_room(self):
        response = self.create(timeRanges=['3H'])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_preset')

    def test_missing_start_date(self):
        data = self.payload()
        del data['start_date']
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/bookings/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('start_date', response.data)

    def test_end_date_before_start_date(self):
        earlier = (date.today() + timedelta(days=9)).isoformat()
        response = self.create(end_date=earlier)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_timezone_header(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/bookings/', self.payload(), format='json', HTTP_X_TIMEZONE='Nowhere/City')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_validates_timezone_header(self):
        self.client.force_authenticate(self.user)
        response = self.client.get('/api/bookings/', HTTP_X_TIMEZONE='Nowhere/City')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/bookings/', HTTP_X_TIMEZONE='Europe/Berlin')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_admin_books_for_user(self):
        response = self.create(user=self.admin, userId=self.other.pk)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], self.other.pk)

    def test_user_cannot_book_for_someone_else(self):
        response = self.create(userId=self.other.pk)
        self.assertEqual(response.data['user'], self.user.pk)

    def test_list_own_bookings(self):
        self.create()
        self.create(user=self.other, timeRanges=['Evening'])

        self.client.force_authenticate(self.user)
        response = self.client.get('/api/bookings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/bookings/')
        self.assertEqual(len(response.data), 2)

    def test_admin_list_filtered_by_date(self):
        self.create()
        self.client.force_authenticate(self.admin)

        response = self.client.get(f'/api/bookings/?date={self.day}')
        self.assertEqual(len(response.data), 1)

        other_day = (date.today() + timedelta(days=11)).isoformat()
        response = self.client.get(f'/api/bookings/?date={other_day}')
        self.assertEqual(len(response.data), 0)

    def test_retrieve_other_users_booking(self):
        booking_pk = self.create().data['id']

        self.client.force_authenticate(self.other)
        response = self.client.get(f'/api/bookings/{booking_pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.admin)
        response = self.client.get(f'/api/bookings/{booking_pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_cancel_booking(self):
        booking_id = self.create().data['booking_id']

        response = self.client.post(f'/api/bookings/{booking_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['booking']['status'], 'Cancelled')

        response = self.client.post(f'/api/bookings/{booking_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_cancelled')

        # Слоты освобождены
        self.assertEqual(self.create(user=self.other).status_code, status.HTTP_201_CREATED)

    def test_cancel_other_users_booking(self):
        booking_id = self.create().data['booking_id']
        self.client.force_authenticate(self.other)
        response = self.client.post(f'/api/bookings/{booking_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_status_admin_only(self):
        booking_pk = self.create().data['id']

        response = self.client.put(f'/api/bookings/{booking_pk}/status/', {'status': 'Confirmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.put(f'/api/bookings/{booking_pk}/status/', {'status': 'Confirmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Confirmed')

        response = self.client.put(f'/api/bookings/{booking_pk}/status/', {'status': 'Cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_booking(self):
        booking_pk = self.create().data['id']

        response = self.client.delete(f'/api/bookings/{booking_pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.delete(f'/api/bookings/{booking_pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Booking.objects.filter(pk=booking_pk).exists())

        response = self.client.delete(f'/api/bookings/{booking_pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
