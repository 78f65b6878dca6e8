from rest_framework import serializers

from rooms.models import Room, SpaceType
from .models import Booking
from .services import BookingService


class BookingCreateSerializer(serializers.Serializer):
    """
    Тело POST /bookings. Поля времени (start_time, end_time, timeRanges,
    slots) разбирает resolver слотов, здесь проверяются только типы.
    """
    roomId = serializers.PrimaryKeyRelatedField(queryset=Room.objects.filter(is_active=True))
    spaceTypeId = serializers.PrimaryKeyRelatedField(queryset=SpaceType.objects.all(), required=False)
    userId = serializers.IntegerField(required=False)
    start_date = serializers.DateField(input_formats=['%Y-%m-%d'])
    end_date = serializers.DateField(input_formats=['%Y-%m-%d'], required=False)
    start_time = serializers.CharField(required=False, allow_blank=True)
    end_time = serializers.CharField(required=False, allow_blank=True)
    timeRanges = serializers.ListField(required=False)
    slots = serializers.ListField(child=serializers.CharField(), required=False)
    guests = serializers.IntegerField(min_value=1, default=1)
    extraAmenity = serializers.ListField(required=False)
    totalAmount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    serviceFeeAndTax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    status = serializers.ChoiceField(choices=BookingService.UPDATABLE_STATUSES, default=Booking.STATUS_PENDING)
    useRewardPoints = serializers.BooleanField(default=False)
    pointsToUse = serializers.IntegerField(min_value=0, default=0)

    SLOT_FIELDS = ('start_time', 'end_time', 'timeRanges', 'slots')

    def slot_request(self):
        return {key: self.validated_data[key] for key in self.SLOT_FIELDS if key in self.validated_data}


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BookingService.UPDATABLE_STATUSES)


class BookingSerializer(serializers.ModelSerializer):
    room_name = serializers.CharField(source='room.name', read_only=True)
    space_type_name = serializers.CharField(source='space_type.name', read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'booking_id', 'user', 'user_email', 'room', 'room_name',
            'space_type', 'space_type_name', 'guests', 'extra_amenity',
            'start_date', 'end_date', 'start_time', 'time_slots', 'status',
            'total_amount', 'service_fee_and_tax', 'amount_paid',
            'reward_points_used', 'reward_discount', 'created_at', 'updated_at'
        ]
        read_only_fields = fields
