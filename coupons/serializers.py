from rest_framework import serializers

from .models import Coupon


class CouponSerializer(serializers.ModelSerializer):
    class Meta:
        model = Coupon
        fields = [
            'id', 'code', 'description', 'discount_type', 'discount_value',
            'max_discount', 'min_purchase_amount', 'expiry_date', 'usage_limit',
            'used_count', 'applicable_space_types', 'applicable_rooms',
            'applicable_users', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'used_count', 'created_at', 'updated_at']

    def validate_code(self, value):
        code = value.strip().upper()
        queryset = Coupon.objects.filter(code=code)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Coupon with this code already exists')
        return code

    def validate(self, attrs):
        discount_type = attrs.get('discount_type', getattr(self.instance, 'discount_type', None))
        discount_value = attrs.get('discount_value', getattr(self.instance, 'discount_value', None))
        if discount_type == Coupon.TYPE_PERCENTAGE and discount_value is not None and discount_value > 100:
            raise serializers.ValidationError({'discount_value': 'Percentage discount cannot exceed 100'})
        return attrs


class ApplyCouponSerializer(serializers.Serializer):
    couponCode = serializers.CharField(max_length=50)
    totalAmount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    roomId = serializers.IntegerField(required=False)
    spaceTypeId = serializers.IntegerField(required=False)
