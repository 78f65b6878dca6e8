from datetime import date, timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import SimpleTestCase, TestCase

from bookings.models import Booking
from bookings.services import BookingService
from .cache import AvailabilityCache
from .models import Room, RoomAvailability, SpaceType
from .services import AvailabilityService
from .validators import validate_slot_labels

User = get_user_model()

SLOTS = ['09:00AM', '10:00AM', '11:00AM', '12:00PM', '01:00PM']


class SlotLabelsValidatorTestCase(SimpleTestCase):

    def test_valid_labels(self):
        validate_slot_labels(['09:00AM', '10:00AM'])

    def test_rejects_duplicates(self):
        with self.assertRaises(DjangoValidationError):
            validate_slot_labels(['09:00AM', '09:00AM'])

    def test_rejects_non_list(self):
        with self.assertRaises(DjangoValidationError):
            validate_slot_labels('09:00AM')

    def test_rejects_empty_label(self):
        with self.assertRaises(DjangoValidationError):
            validate_slot_labels(['09:00AM', ' '])


class AvailabilityCacheTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.date = date.today() + timedelta(days=1)

    def test_availability_cache_set_get(self):
        """Тест сохранения и получения из кеша"""
        test_data = {'date': self.date.isoformat(), 'timeSlots': {}}
        AvailabilityCache.set_availability(1, self.date, test_data)
        self.assertEqual(AvailabilityCache.get_availability(1, self.date), test_data)

    def test_invalidate_specific_dates(self):
        other_day = self.date + timedelta(days=1)
        AvailabilityCache.set_availability(1, self.date, {'a': 1})
        AvailabilityCache.set_availability(1, other_day, {'b': 2})

        AvailabilityCache.invalidate_room_availability(1, [self.date])

        self.assertIsNone(AvailabilityCache.get_availability(1, self.date))
        self.assertEqual(AvailabilityCache.get_availability(1, other_day), {'b': 2})

    def test_invalidate_whole_room(self):
        """Без дат сбрасывается вся комната, другие комнаты не затронуты"""
        AvailabilityCache.set_availability(1, self.date, {'a': 1})
        AvailabilityCache.set_availability(2, self.date, {'b': 2})

        AvailabilityCache.invalidate_room_availability(1)

        self.assertIsNone(AvailabilityCache.get_availability(1, self.date))
        self.assertEqual(AvailabilityCache.get_availability(2, self.date), {'b': 2})

    def test_late_write_after_day_invalidation_is_discarded(self):
        """Расчет, начатый до инвалидации дня, не попадает в выдачу"""
        snapshot = AvailabilityCache.snapshot(1, self.date)
        AvailabilityCache.invalidate_room_availability(1, [self.date])

        AvailabilityCache.set_availability(1, self.date, {'stale': True}, snapshot=snapshot)

        self.assertIsNone(AvailabilityCache.get_availability(1, self.date))
        AvailabilityCache.set_availability(1, self.date, {'fresh': True})
        self.assertEqual(AvailabilityCache.get_availability(1, self.date), {'fresh': True})

    def test_late_write_after_room_invalidation_is_discarded(self):
        snapshot = AvailabilityCache.snapshot(1, self.date)
        AvailabilityCache.invalidate_room_availability(1)

        AvailabilityCache.set_availability(1, self.date, {'stale': True}, snapshot=snapshot)

        self.assertIsNone(AvailabilityCache.get_availability(1, self.date))

    def test_invalidate_multiple_rooms(self):
        AvailabilityCache.set_availability(1, self.date, {'a': 1})
        AvailabilityCache.set_availability(2, self.date, {'b': 2})

        AvailabilityCache.invalidate_multiple_rooms([1, 2])

        self.assertIsNone(AvailabilityCache.get_availability(1, self.date))
        self.assertIsNone(AvailabilityCache.get_availability(2, self.date))


class AvailabilityServiceTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(email='test@example.com', password='testpass123')
        self.space_type = SpaceType.objects.create(name='Co-working', allowed_slots=list(SLOTS))
        self.room = Room.objects.create(name='Desk', location='Floor 1', space_type=self.space_type)
        self.day = date.today() + timedelta(days=3)

    def day_data(self, day=None):
        day = day or self.day
        return AvailabilityService.get_room_availability(self.room, day, day)['availability'][0]

    def test_empty_day_is_fully_available(self):
        data = self.day_data()

        self.assertEqual(data['date'], self.day.isoformat())
        self.assertEqual(data['day'], self.day.strftime('%A'))
        self.assertEqual(data['availableSize'], 1)
        self.assertTrue(data['isAvailable'])
        self.assertEqual(list(data['timeSlots']), SLOTS)
        for slot in data['timeSlots'].values():
            self.assertEqual(slot, {'available': 1, 'booked': 0, 'isAvailable': True})
        # Чтение не создает записей доступности
        self.assertFalse(RoomAvailability.objects.exists())

    def test_range_of_days(self):
        data = AvailabilityService.get_room_availability(self.room, self.day, self.day + timedelta(days=2))
        self.assertEqual(data['roomId'], self.room.pk)
        self.assertEqual(len(data['availability']), 3)

    def test_booking_invalidates_cached_day(self):
        self.assertTrue(self.day_data()['timeSlots']['09:00AM']['isAvailable'])

        BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'start_time': '09:00AM', 'timeRanges': ['3H']},
        )

        slots = self.day_data()['timeSlots']
        for label in ['09:00AM', '10:00AM', '11:00AM']:
            self.assertEqual(slots[label], {'available': 0, 'booked': 1, 'isAvailable': False})
        self.assertTrue(slots['12:00PM']['isAvailable'])

    def test_booking_committed_during_calculation_not_cached(self):
        """Бронирование, созданное во время расчета дня, видно при следующем чтении"""
        real_calculate = AvailabilityService._calculate_day

        def calculate_then_book(room, day):
            stale = real_calculate(room, day)
            if not Booking.objects.exists():
                BookingService.create_booking(
                    user=self.user, room=room, start_date=day,
                    slot_request={'start_time': '09:00AM'},
                )
            return stale

        with mock.patch.object(AvailabilityService, '_calculate_day', side_effect=calculate_then_book):
            stale = self.day_data()
        self.assertTrue(stale['timeSlots']['09:00AM']['isAvailable'])

        self.assertFalse(self.day_data()['timeSlots']['09:00AM']['isAvailable'])

    def test_fully_booked_day(self):
        BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'start_time': '09:00AM', 'timeRanges': ['FullTime']},
        )
        self.assertFalse(self.day_data()['isAvailable'])

    def test_cancel_invalidates_cached_day(self):
        booking = BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'start_time': '09:00AM'},
        )
        self.assertFalse(self.day_data()['timeSlots']['09:00AM']['isAvailable'])

        BookingService.cancel_booking(booking.booking_id)

        self.assertTrue(self.day_data()['timeSlots']['09:00AM']['isAvailable'])

    def test_range_booking_blocks_overlapping_labels(self):
        BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'timeRanges': [{'start': '09:00', 'end': '10:30'}]},
        )

        data = self.day_data()
        self.assertFalse(data['timeSlots']['09:00AM']['isAvailable'])
        self.assertFalse(data['timeSlots']['10:00AM']['isAvailable'])
        self.assertTrue(data['timeSlots']['11:00AM']['isAvailable'])
        self.assertEqual(data['bookedRanges'], [{'label': None, 'start': '09:00', 'end': '10:30'}])

    def test_duration_code_slot_booked_once(self):
        space_type = SpaceType.objects.create(name='Private Office', allowed_slots=['3H', '6H', 'FullTime'])
        room = Room.objects.create(name='Office 5', location='Floor 5', space_type=space_type)

        BookingService.create_booking(
            user=self.user, room=room, start_date=self.day,
            slot_request={'timeRanges': ['3H']},
        )

        data = AvailabilityService.get_room_availability(room, self.day, self.day)['availability'][0]
        self.assertEqual(data['timeSlots']['3H'], {'available': 0, 'booked': 1, 'isAvailable': False})
        self.assertEqual(data['timeSlots']['6H'], {'available': 1, 'booked': 0, 'isAvailable': True})
        self.assertEqual(data['timeSlots']['FullTime'], {'available': 1, 'booked': 0, 'isAvailable': True})
        self.assertTrue(data['isAvailable'])

    def test_capacity_shows_remaining_units(self):
        self.room.capacity = 3
        self.room.save()
        BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'start_time': '09:00AM'},
        )

        slot = self.day_data()['timeSlots']['09:00AM']
        self.assertEqual(slot, {'available': 2, 'booked': 1, 'isAvailable': True})

    def test_sync_capacity_updates_future_records(self):
        RoomAvailability.objects.create(room=self.room, date=self.day, available_size=1)
        past = RoomAvailability.objects.create(room=self.room, date=date.today() - timedelta(days=3), available_size=1)

        self.room.capacity = 4
        self.room.save()
        self.assertEqual(AvailabilityService.sync_capacity(self.room), 1)

        self.assertEqual(RoomAvailability.objects.get(room=self.room, date=self.day).available_size, 4)
        past.refresh_from_db()
        self.assertEqual(past.available_size, 1)

    def test_affected_dates_from_booking(self):
        booking = BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            end_date=self.day + timedelta(days=1), slot_request={'start_time': '09:00AM'},
        )
        self.assertEqual(
            AvailabilityService.get_affected_dates_from_booking(booking),
            [self.day, self.day + timedelta(days=1)]
        )
        self.assertEqual(AvailabilityService.get_affected_dates_from_booking(None), [])


class RoomModelTestCase(TestCase):

    def setUp(self):
        self.space_type = SpaceType.objects.create(name='Meeting Room', allowed_slots=list(SLOTS))
        self.room = Room.objects.create(name='Board', location='Floor 2', space_type=self.space_type)

    def test_room_creation(self):
        """Тест создания комнаты"""
        self.assertEqual(self.room.capacity, 1)
        self.assertTrue(self.room.is_active)
        self.assertEqual(str(self.room), 'Board (Floor 2)')

    def test_meeting_room_detection(self):
        self.assertTrue(self.space_type.is_meeting_room)
        self.assertFalse(SpaceType(name='Co-working').is_meeting_room)

    def test_booked_slots_mapping(self):
        record = RoomAvailability.objects.create(room=self.room, date=date.today(), available_size=1)
        record.slots.create(label='09:00AM', count=1)
        self.assertEqual(record.booked_slots, {'09:00AM': 1})
