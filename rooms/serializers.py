from rest_framework import serializers
from .models import Room, SpaceType


class SpaceTypeSerializer(serializers.ModelSerializer):
    """Сериализатор для типа пространства"""

    class Meta:
        model = SpaceType
        fields = [
            'id', 'name', 'description', 'allowed_slots', 'slot_behavior',
            'slot_duration', 'is_active', 'last_booked_at', 'bookings_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'last_booked_at', 'bookings_count', 'created_at', 'updated_at']

    def validate_allowed_slots(self, value):
        """Метки слотов без пробелов по краям"""
        return [label.strip() if isinstance(label, str) else label for label in value]


class RoomSerializer(serializers.ModelSerializer):
    """Сериализатор для комнаты"""
    space_type_name = serializers.CharField(source='space_type.name', read_only=True)

    class Meta:
        model = Room
        fields = [
            'id', 'name', 'description', 'location', 'capacity', 'price_per_hour',
            'space_type', 'space_type_name', 'amenities',
            'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class RoomWriteSerializer(serializers.ModelSerializer):
    """Сериализатор для создания и обновления комнаты"""

    class Meta:
        model = Room
        fields = [
            'name', 'description', 'location', 'capacity', 'price_per_hour',
            'space_type', 'amenities', 'is_active'
        ]

    def validate_capacity(self, value):
        """Валидация вместимости"""
        if value < 1:
            raise serializers.ValidationError('Вместимость должна быть не менее 1')
        return value

    def validate_amenities(self, value):
        """Каждое удобство - объект {name, price, isFree}"""
        if not isinstance(value, list):
            raise serializers.ValidationError('amenities must be a list')
        for item in value:
            if not isinstance(item, dict) or not str(item.get('name') or '').strip():
                raise serializers.ValidationError('Each amenity must be an object with a name')
            price = item.get('price', 0)
            if not isinstance(price, (int, float)) or price < 0:
                raise serializers.ValidationError(f"Invalid price for amenity '{item['name']}'")
        return value

    def validate_space_type(self, value):
        if not value.is_active:
            raise serializers.ValidationError('Space type is not active')
        return value
