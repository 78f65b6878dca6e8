import secrets

from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.conf import settings

from core.dates import iter_days
from .slots import ResolvedSlot


class Booking(models.Model):
    STATUS_PENDING = 'Pending'
    STATUS_BOOKED = 'Booked'
    STATUS_CONFIRMED = 'Confirmed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_BOOKED, 'Booked'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    # Бронирования, которые держат слоты комнаты
    BLOCKING_STATUSES = (STATUS_PENDING, STATUS_BOOKED, STATUS_CONFIRMED)

    booking_id = models.CharField(max_length=9, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bookings')
    room = models.ForeignKey('rooms.Room', on_delete=models.PROTECT, related_name='bookings')
    space_type = models.ForeignKey('rooms.SpaceType', on_delete=models.PROTECT, related_name='bookings')
    guests = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    extra_amenity = models.JSONField(default=list, blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    start_time = models.CharField(max_length=50, blank=True, default='')
    time_slots = models.JSONField(default=list)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    service_fee_and_tax = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    reward_points_used = models.PositiveIntegerField(default=0)
    reward_discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bookings'
        indexes = [
            models.Index(fields=['user', 'status'], name='bookings_user_status_idx'),
            models.Index(fields=['room', 'start_date', 'end_date'], name='bookings_room_dates_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F('start_date')),
                name='booking_end_not_before_start',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.booking_id} ({self.status})"

    def clean(self):
        if self.end_date < self.start_date:
            raise ValidationError('End date must not be before start date')

    @staticmethod
    def generate_booking_id():
        return f"M{secrets.randbelow(90000000) + 10000000}"

    @property
    def resolved_slots(self):
        return tuple(ResolvedSlot.from_dict(item) for item in self.time_slots)

    @property
    def slot_labels(self):
        return [item['label'] for item in self.time_slots if item.get('label')]

    @property
    def days(self):
        return list(iter_days(self.start_date, self.end_date))

    @property
    def is_cancelled(self):
        return self.status == self.STATUS_CANCELLED
