from datetime import date, time, timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase

from core.exceptions import (
    AlreadyCancelledError,
    InsufficientSlotsError,
    InvalidPresetError,
    InvalidSlotError,
    InvalidTimeFormatError,
    NotFoundError,
    SlotConflictError,
    ValidationError,
)
from rewards.services import RewardService
from rooms import availability
from rooms.models import BookedSlot, Room, RoomAvailability, SpaceType
from .conflicts import check_availability
from .models import Booking
from .services import BookingService
from .slots import ResolvedSlot, label_slot, resolve_request

User = get_user_model()

HOURLY_SLOTS = [
    '09:00AM', '10:00AM', '11:00AM', '12:00PM', '01:00PM',
    '02:00PM', '03:00PM', '04:00PM', '05:00PM', '06:00PM',
]


class SlotResolverTestCase(SimpleTestCase):

    def setUp(self):
        self.coworking = SpaceType(name='Co-working', allowed_slots=list(HOURLY_SLOTS))
        self.meeting = SpaceType(name='Meeting Room', allowed_slots=list(HOURLY_SLOTS))

    def labels(self, space_type, data):
        return [slot.label for slot in resolve_request(space_type, data)]

    def test_window_from_start_time(self):
        """start_time + 3H дает три слота подряд"""
        self.assertEqual(
            self.labels(self.coworking, {'start_time': '10:00AM', 'timeRanges': ['3H']}),
            ['10:00AM', '11:00AM', '12:00PM']
        )

    def test_default_preset_is_three_hours(self):
        self.assertEqual(
            self.labels(self.coworking, {'start_time': '01:00PM'}),
            ['01:00PM', '02:00PM', '03:00PM']
        )

    def test_any_duration_code_is_accepted(self):
        self.assertEqual(len(self.labels(self.coworking, {'start_time': '09:00AM', 'timeRanges': ['5H']})), 5)

    def test_full_time_runs_to_end_of_day(self):
        self.assertEqual(
            self.labels(self.coworking, {'start_time': '04:00PM', 'timeRanges': ['FullTime']}),
            ['04:00PM', '05:00PM', '06:00PM']
        )

    def test_window_past_end_of_day(self):
        """Окно длиннее остатка дня - InsufficientSlots"""
        with self.assertRaises(InsufficientSlotsError) as ctx:
            resolve_request(self.coworking, {'start_time': '05:00PM', 'timeRanges': ['3H']})
        self.assertEqual(str(ctx.exception), 'Only 2 slots available from 05:00PM, but 3 requested')

    def test_unknown_start_time(self):
        with self.assertRaises(InvalidSlotError):
            resolve_request(self.coworking, {'start_time': '08:00AM', 'timeRanges': ['3H']})

    def test_start_time_required_for_non_meeting(self):
        with self.assertRaises(ValidationError):
            resolve_request(self.coworking, {})

    def test_meeting_room_morning(self):
        self.assertEqual(
            self.labels(self.meeting, {'timeRanges': ['Morning']}),
            ['09:00AM', '10:00AM', '11:00AM', '12:00PM']
        )

    def test_meeting_room_evening(self):
        self.assertEqual(
            self.labels(self.meeting, {'timeRanges': ['Evening']}),
            ['01:00PM', '02:00PM', '03:00PM', '04:00PM', '05:00PM', '06:00PM']
        )

    def test_meeting_room_rejects_duration_preset(self):
        with self.assertRaises(InvalidPresetError):
            resolve_request(self.meeting, {'timeRanges': ['3H']})

    def test_named_preset_outside_allowed_slots(self):
        space_type = SpaceType(name='Meeting Room', allowed_slots=['09:00AM', '10:00AM'])
        with self.assertRaises(InvalidSlotError):
            resolve_request(space_type, {'timeRanges': ['Morning']})

    def test_duration_code_labels_are_discrete(self):
        """Для типов со слотами ["3H", "6H"] значение timeRanges - это метка"""
        space_type = SpaceType(name='Hot desk', allowed_slots=['3H', '6H'])
        slots = resolve_request(space_type, {'timeRanges': ['6H']})
        self.assertEqual(slots, (ResolvedSlot('6H'),))
        self.assertFalse(slots[0].is_timed)

    def test_explicit_slots_sorted_and_deduplicated(self):
        self.assertEqual(
            self.labels(self.coworking, {'slots': ['11:00AM', '10:00AM', '11:00AM']}),
            ['10:00AM', '11:00AM']
        )

    def test_explicit_slots_must_be_consecutive(self):
        with self.assertRaises(InvalidSlotError):
            resolve_request(self.coworking, {'slots': ['09:00AM', '11:00AM']})

    def test_explicit_slot_not_allowed(self):
        with self.assertRaises(InvalidSlotError):
            resolve_request(self.coworking, {'slots': ['07:00PM']})

    def test_full_block_expands_to_every_slot(self):
        space_type = SpaceType(
            name='Studio',
            allowed_slots=list(HOURLY_SLOTS),
            slot_behavior=SpaceType.BEHAVIOR_FULL_BLOCK,
        )
        self.assertEqual(self.labels(space_type, {'slots': ['10:00AM']}), HOURLY_SLOTS)

    def test_time_ranges(self):
        slots = resolve_request(self.coworking, {'timeRanges': [
            {'start': '13:00', 'end': '14:00'},
            {'start': '09:00', 'end': '10:30'},
        ]})
        self.assertEqual(slots, (
            ResolvedSlot(None, time(9, 0), time(10, 30)),
            ResolvedSlot(None, time(13, 0), time(14, 0)),
        ))

    def test_start_and_end_time_pair(self):
        slots = resolve_request(self.coworking, {'start_time': '09:00AM', 'end_time': '10:30AM'})
        self.assertEqual(slots, (ResolvedSlot(None, time(9, 0), time(10, 30)),))

    def test_time_ranges_overlapping_each_other(self):
        with self.assertRaises(ValidationError):
            resolve_request(self.coworking, {'timeRanges': [
                {'start': '09:00', 'end': '10:30'},
                {'start': '10:00', 'end': '11:00'},
            ]})

    def test_time_range_end_before_start(self):
        with self.assertRaises(InvalidTimeFormatError):
            resolve_request(self.coworking, {'timeRanges': [{'start': '11:00', 'end': '10:00'}]})

    def test_time_range_bad_format(self):
        with self.assertRaises(InvalidTimeFormatError):
            resolve_request(self.coworking, {'timeRanges': [{'start': 'noon', 'end': '13:00'}]})

    def test_label_slot_times(self):
        self.assertEqual(label_slot('09:00AM', 1), ResolvedSlot('09:00AM', time(9, 0), time(10, 0)))
        self.assertEqual(label_slot('11:00PM', 2).end, time.max)

    def test_back_to_back_slots_do_not_overlap(self):
        first = ResolvedSlot(None, time(9, 0), time(10, 0))
        second = ResolvedSlot(None, time(10, 0), time(11, 0))
        self.assertFalse(first.overlaps(second))
        self.assertTrue(ResolvedSlot(None, time(9, 0), time(10, 30)).overlaps(second))


class BookingTestMixin:

    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(email='user@example.com', password='testpass123')
        self.other = User.objects.create_user(email='other@example.com', password='testpass123')
        self.coworking = SpaceType.objects.create(name='Co-working', allowed_slots=list(HOURLY_SLOTS))
        self.meeting = SpaceType.objects.create(name='Meeting Room', allowed_slots=list(HOURLY_SLOTS))
        self.room = Room.objects.create(name='Desk A', location='Floor 1', space_type=self.coworking)
        self.meeting_room = Room.objects.create(name='Board', location='Floor 2', space_type=self.meeting)
        self.day = date.today() + timedelta(days=7)

    def book(self, room=None, start_date=None, end_date=None, user=None, **slot_request):
        return BookingService.create_booking(
            user=user or self.user,
            room=room or self.room,
            start_date=start_date or self.day,
            end_date=end_date,
            slot_request=slot_request,
        )

    def count(self, label, day=None, room=None):
        slot = BookedSlot.objects.filter(
            availability__room=room or self.room,
            availability__date=day or self.day,
            label=label,
        ).first()
        return slot.count if slot else 0


class BookingLifecycleTestCase(BookingTestMixin, TestCase):

    def test_create_reserves_slots(self):
        booking = self.book(start_time='10:00AM', timeRanges=['3H'])

        self.assertRegex(booking.booking_id, r'^M\d{8}$')
        self.assertEqual(booking.status, Booking.STATUS_PENDING)
        self.assertEqual(booking.slot_labels, ['10:00AM', '11:00AM', '12:00PM'])
        self.assertEqual(booking.start_time, '10:00AM')
        for label in ['10:00AM', '11:00AM', '12:00PM']:
            self.assertEqual(self.count(label), 1)
        self.assertEqual(self.count('09:00AM'), 0)

        self.coworking.refresh_from_db()
        self.assertEqual(self.coworking.bookings_count, 1)
        self.assertIsNotNone(self.coworking.last_booked_at)

    def test_availability_record_initialised_from_capacity(self):
        self.room.capacity = 3
        self.room.save()
        self.book(start_time='10:00AM')
        record = RoomAvailability.objects.get(room=self.room, date=self.day)
        self.assertEqual(record.available_size, 3)

    def test_overlapping_window_conflicts(self):
        self.book(start_time='10:00AM', timeRanges=['3H'])

        with self.assertRaises(SlotConflictError) as ctx:
            self.book(start_time='11:00AM', timeRanges=['3H'], user=self.other)

        self.assertEqual(ctx.exception.slot, '11:00AM')
        self.assertEqual(ctx.exception.day, self.day)
        self.assertEqual(Booking.objects.count(), 1)
        # Свободные слоты второго запроса не заняты
        self.assertEqual(self.count('01:00PM'), 0)

    def test_meeting_room_double_booking(self):
        self.book(room=self.meeting_room, timeRanges=['Morning'])

        with self.assertRaises(SlotConflictError) as ctx:
            self.book(room=self.meeting_room, timeRanges=['Morning'], user=self.other)
        self.assertEqual(ctx.exception.slot, '09:00AM')
        self.assertIn("Slot '09:00AM' is already booked on", str(ctx.exception))

        # Evening не пересекается с Morning
        self.book(room=self.meeting_room, timeRanges=['Evening'], user=self.other)

    def test_capacity_allows_shared_slots(self):
        self.room.capacity = 2
        self.room.save()

        self.book(start_time='09:00AM')
        self.book(start_time='09:00AM', user=self.other)
        self.assertEqual(self.count('09:00AM'), 2)

        with self.assertRaises(SlotConflictError):
            self.book(start_time='10:00AM')

    def test_multi_day_conflict_reports_first_conflicting_day(self):
        last_day = self.day + timedelta(days=2)
        self.book(start_date=last_day, start_time='09:00AM')

        with self.assertRaises(SlotConflictError) as ctx:
            self.book(start_date=self.day, end_date=last_day, start_time='10:00AM', user=self.other)

        self.assertEqual(ctx.exception.day, last_day)
        self.assertEqual(ctx.exception.slot, '10:00AM')
        self.assertEqual(self.count('10:00AM', day=self.day), 0)

    def test_multi_day_booking_reserves_every_day(self):
        end = self.day + timedelta(days=2)
        booking = self.book(start_date=self.day, end_date=end, start_time='09:00AM', timeRanges=['1H'])
        self.assertEqual(len(booking.days), 3)
        for offset in range(3):
            self.assertEqual(self.count('09:00AM', day=self.day + timedelta(days=offset)), 1)

    def test_end_date_before_start_date(self):
        with self.assertRaises(ValidationError):
            self.book(start_date=self.day, end_date=self.day - timedelta(days=1), start_time='09:00AM')

    def test_space_type_must_match_room(self):
        with self.assertRaises(ValidationError):
            BookingService.create_booking(
                user=self.user, room=self.room, start_date=self.day,
                space_type=self.meeting, slot_request={'timeRanges': ['Morning']},
            )

    def test_cancelled_status_rejected_on_create(self):
        with self.assertRaises(ValidationError):
            BookingService.create_booking(
                user=self.user, room=self.room, start_date=self.day,
                slot_request={'start_time': '09:00AM'}, status=Booking.STATUS_CANCELLED,
            )

    def test_cancel_releases_slots(self):
        booking = self.book(start_time='10:00AM', timeRanges=['3H'])

        cancelled = BookingService.cancel_booking(booking.booking_id)

        self.assertEqual(cancelled.status, Booking.STATUS_CANCELLED)
        for label in ['10:00AM', '11:00AM', '12:00PM']:
            self.assertEqual(self.count(label), 0)
        # Счетчик типа пространства при отмене не меняется
        self.coworking.refresh_from_db()
        self.assertEqual(self.coworking.bookings_count, 1)

        # Слоты снова можно забронировать
        self.book(start_time='10:00AM', timeRanges=['3H'], user=self.other)

    def test_cancel_twice(self):
        booking = self.book(start_time='10:00AM')
        BookingService.cancel_booking(booking.booking_id)

        with self.assertRaises(AlreadyCancelledError):
            BookingService.cancel_booking(booking.booking_id)
        self.assertEqual(self.count('10:00AM'), 0)

    def test_cancel_unknown_booking(self):
        with self.assertRaises(NotFoundError):
            BookingService.cancel_booking('M00000000')

    def test_delete_releases_slots_and_counter(self):
        booking = self.book(start_time='10:00AM')

        BookingService.delete_booking(booking.pk)

        self.assertFalse(Booking.objects.filter(pk=booking.pk).exists())
        self.assertEqual(self.count('10:00AM'), 0)
        self.coworking.refresh_from_db()
        self.assertEqual(self.coworking.bookings_count, 0)

    def test_delete_cancelled_booking_does_not_release_twice(self):
        self.room.capacity = 2
        self.room.save()
        first = self.book(start_time='10:00AM')
        self.book(start_time='10:00AM', user=self.other)
        BookingService.cancel_booking(first.booking_id)
        self.assertEqual(self.count('10:00AM'), 1)

        BookingService.delete_booking(first.pk)
        self.assertEqual(self.count('10:00AM'), 1)

    def test_delete_unknown_booking(self):
        with self.assertRaises(NotFoundError):
            BookingService.delete_booking(999999)

    def test_update_status(self):
        booking = self.book(start_time='10:00AM')

        updated = BookingService.update_status(booking.pk, Booking.STATUS_CONFIRMED)
        self.assertEqual(updated.status, Booking.STATUS_CONFIRMED)
        # Смена статуса не трогает занятость
        self.assertEqual(self.count('10:00AM'), 1)

        with self.assertRaises(ValidationError):
            BookingService.update_status(booking.pk, Booking.STATUS_CANCELLED)

    def test_update_status_of_cancelled_booking(self):
        booking = self.book(start_time='10:00AM')
        BookingService.cancel_booking(booking.booking_id)
        with self.assertRaises(AlreadyCancelledError):
            BookingService.update_status(booking.pk, Booking.STATUS_BOOKED)


class TimeRangeConflictTestCase(BookingTestMixin, TestCase):

    def test_overlapping_ranges_conflict(self):
        self.book(timeRanges=[{'start': '09:00', 'end': '10:30'}])

        with self.assertRaises(SlotConflictError) as ctx:
            self.book(timeRanges=[{'start': '10:00', 'end': '11:00'}], user=self.other)
        self.assertEqual(ctx.exception.slot, '10:00-11:00')

    def test_back_to_back_ranges_allowed(self):
        self.book(timeRanges=[{'start': '09:00', 'end': '10:30'}])
        booking = self.book(timeRanges=[{'start': '10:30', 'end': '11:30'}], user=self.other)
        self.assertEqual(booking.start_time, '10:30-11:30')

    def test_range_against_labelled_booking(self):
        self.book(start_time='10:00AM', timeRanges=['1H'])

        with self.assertRaises(SlotConflictError):
            self.book(timeRanges=[{'start': '10:30', 'end': '11:00'}], user=self.other)
        self.book(timeRanges=[{'start': '11:00', 'end': '12:00'}], user=self.other)

    def test_label_against_range_booking(self):
        self.book(timeRanges=[{'start': '09:00', 'end': '10:30'}])

        with self.assertRaises(SlotConflictError) as ctx:
            self.book(start_time='09:00AM', timeRanges=['1H'], user=self.other)
        self.assertEqual(ctx.exception.slot, '09:00AM')

    def test_cancelled_range_no_longer_blocks(self):
        booking = self.book(timeRanges=[{'start': '09:00', 'end': '10:30'}])
        BookingService.cancel_booking(booking.booking_id)
        self.book(timeRanges=[{'start': '10:00', 'end': '11:00'}], user=self.other)

    def test_range_committed_while_waiting_for_day_lock(self):
        """Бронирование, записанное до получения блокировки дня, учитывается"""
        requested = ResolvedSlot(None, time(9, 0), time(10, 0))
        real_get_day = availability.get_day

        def get_day_after_concurrent_insert(room, day, lock=False):
            if lock and not Booking.objects.exists():
                Booking.objects.create(
                    booking_id=Booking.generate_booking_id(),
                    user=self.other,
                    room=room,
                    space_type=room.space_type,
                    start_date=day,
                    end_date=day,
                    start_time=requested.describe(),
                    time_slots=[requested.to_dict()],
                    status=Booking.STATUS_BOOKED,
                )
            return real_get_day(room, day, lock=lock)

        with mock.patch.object(availability, 'get_day', side_effect=get_day_after_concurrent_insert):
            with self.assertRaises(SlotConflictError) as ctx:
                check_availability(self.room, self.day, self.day, (requested,))
        self.assertEqual(ctx.exception.slot, '09:00-10:00')


class AvailabilityStoreTestCase(BookingTestMixin, TestCase):

    def test_reserve_is_all_or_nothing(self):
        next_day = self.day + timedelta(days=1)
        availability.reserve(self.room, [next_day], ['10:00AM'])

        with self.assertRaises(SlotConflictError) as ctx:
            availability.reserve(self.room, [self.day, next_day], ['09:00AM', '10:00AM'])

        self.assertEqual(ctx.exception.day, next_day)
        self.assertEqual(self.count('09:00AM', day=self.day), 0)
        self.assertEqual(self.count('10:00AM', day=self.day), 0)
        self.assertEqual(self.count('10:00AM', day=next_day), 1)

    def test_release_floors_at_zero(self):
        availability.reserve(self.room, [self.day], ['09:00AM'])
        self.assertEqual(availability.release(self.room, [self.day], ['09:00AM']), 1)
        self.assertEqual(availability.release(self.room, [self.day], ['09:00AM']), 0)
        self.assertEqual(self.count('09:00AM'), 0)


class RewardEffectsTestCase(BookingTestMixin, TestCase):

    def test_points_earned_above_minimum_amount(self):
        booking = BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'start_time': '09:00AM'}, total_amount=1000,
        )
        self.assertEqual(booking.reward_points_earned, 5)
        self.assertEqual(RewardService.get_user_points(self.user).total_points, 5)

    def test_no_points_below_minimum_amount(self):
        booking = BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'start_time': '09:00AM'}, total_amount=500,
        )
        self.assertEqual(booking.reward_points_earned, 0)
        self.assertEqual(RewardService.get_user_points(self.user).total_points, 0)

    def test_redeem_points(self):
        RewardService.add_points(self.user, 100)

        booking = BookingService.create_booking(
            user=self.user, room=self.room, start_date=self.day,
            slot_request={'start_time': '09:00AM'}, total_amount=1000,
            use_reward_points=True,
        )

        self.assertEqual(booking.reward_points_used, 100)
        self.assertEqual(booking.reward_discount, Decimal('10.00'))
        self.assertEqual(booking.amount_paid, Decimal('990.00'))
        # 100 - 100 списано + 5 начислено
        self.assertEqual(RewardService.get_user_points(self.user).total_points, 5)

    def test_redeem_more_than_allowed(self):
        RewardService.add_points(self.user, 100)
        with self.assertRaises(ValidationError):
            BookingService.create_booking(
                user=self.user, room=self.room, start_date=self.day,
                slot_request={'start_time': '09:00AM'}, total_amount=1000,
                use_reward_points=True, points_to_use=150,
            )
        self.assertEqual(Booking.objects.count(), 0)
        self.assertEqual(self.count('09:00AM'), 0)
