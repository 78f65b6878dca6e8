from django.db import models
from django.core.validators import MinValueValidator
from django.core.exceptions import ValidationError

from .validators import validate_slot_labels


class SpaceType(models.Model):
    """Тип пространства: задает допустимые слоты для комнат этого типа"""

    BEHAVIOR_CONSECUTIVE = 'consecutive'
    BEHAVIOR_FULL_BLOCK = 'full-block'
    BEHAVIOR_CHOICES = [
        (BEHAVIOR_CONSECUTIVE, 'Consecutive'),
        (BEHAVIOR_FULL_BLOCK, 'Full block'),
    ]

    name = models.CharField(
        max_length=255,
        unique=True,
        verbose_name='Название типа'
    )
    description = models.TextField(
        blank=True,
        default='',
        verbose_name='Описание'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Активен'
    )
    allowed_slots = models.JSONField(
        default=list,
        validators=[validate_slot_labels],
        verbose_name='Допустимые слоты',
        help_text='Упорядоченный список меток, например ["09:00AM", "10:00AM"]'
    )
    slot_behavior = models.CharField(
        max_length=20,
        choices=BEHAVIOR_CHOICES,
        default=BEHAVIOR_CONSECUTIVE,
        verbose_name='Поведение слотов'
    )
    slot_duration = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        verbose_name='Длительность слота (часы)'
    )
    last_booked_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Последнее бронирование'
    )
    bookings_count = models.PositiveIntegerField(
        default=0,
        verbose_name='Количество бронирований'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'space_types'
        verbose_name = 'Тип пространства'
        verbose_name_plural = 'Типы пространств'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_meeting_room(self):
        return 'meeting' in self.name.lower()


class Room(models.Model):
    """Комната (ресурс для бронирования)"""

    name = models.CharField(
        max_length=255,
        verbose_name='Название комнаты'
    )
    description = models.TextField(
        blank=True,
        default='',
        verbose_name='Описание'
    )
    location = models.CharField(
        max_length=500,
        verbose_name='Местоположение'
    )
    capacity = models.IntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        verbose_name='Вместимость',
        help_text='Сколько бронирований может занимать один слот в один день'
    )
    price_per_hour = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        verbose_name='Цена за час'
    )
    space_type = models.ForeignKey(
        SpaceType,
        on_delete=models.PROTECT,
        related_name='rooms',
        verbose_name='Тип пространства'
    )
    amenities = models.JSONField(
        default=list,
        blank=True,
        verbose_name='Удобства',
        help_text='Список {"name", "price", "isFree"}'
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name='Активна',
        help_text='Неактивные комнаты скрыты из поиска'
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Дата создания'
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Дата обновления'
    )

    class Meta:
        db_table = 'rooms'
        verbose_name = 'Комната'
        verbose_name_plural = 'Комнаты'
        indexes = [
            models.Index(fields=['is_active', 'created_at'], name='rooms_active_created_idx'),
            models.Index(fields=['location'], name='rooms_location_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.location})"


class RoomAvailability(models.Model):
    """
    Учет занятости комнаты на конкретный день.
    Создается лениво при первом бронировании, затрагивающем (комнату, день).
    """

    room = models.ForeignKey(
        Room,
        on_delete=models.CASCADE,
        related_name='availability',
        verbose_name='Комната'
    )
    date = models.DateField(verbose_name='Дата')
    available_size = models.PositiveIntegerField(
        verbose_name='Потолок бронирований на день'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'room_availability'
        verbose_name = 'Доступность комнаты'
        verbose_name_plural = 'Доступность комнат'
        constraints = [
            models.UniqueConstraint(fields=['room', 'date'], name='unique_room_date'),
        ]
        ordering = ['date']

    def __str__(self):
        return f"{self.room_id} @ {self.date.isoformat()}"

    @property
    def booked_slots(self):
        """Отображение метка слота -> количество занятых единиц"""
        return {slot.label: slot.count for slot in self.slots.all()}


class BookedSlot(models.Model):
    """Счетчик занятых единиц одного слота в рамках RoomAvailability"""

    availability = models.ForeignKey(
        RoomAvailability,
        on_delete=models.CASCADE,
        related_name='slots'
    )
    label = models.CharField(max_length=50, verbose_name='Метка слота')
    count = models.PositiveIntegerField(default=0, verbose_name='Занято')

    class Meta:
        db_table = 'room_booked_slots'
        constraints = [
            models.UniqueConstraint(fields=['availability', 'label'], name='unique_availability_slot'),
        ]

    def __str__(self):
        return f"{self.label}: {self.count}"

    def clean(self):
        allowed = self.availability.room.space_type.allowed_slots
        if self.label not in allowed:
            raise ValidationError(f"Slot '{self.label}' is not allowed for this space type")
