from rest_framework import serializers

from .models import RewardHistory, RewardSetting, RewardSettingChange, UserReward


class RewardSettingSerializer(serializers.ModelSerializer):
    """Настройки бонусов в формате API (camelCase)"""
    pointToCurrencyRate = serializers.IntegerField(source='point_to_currency_rate', required=False)
    pointsPerBooking = serializers.IntegerField(source='points_per_booking', required=False)
    minBookingAmountForPoints = serializers.DecimalField(
        source='min_booking_amount_for_points', max_digits=12, decimal_places=2, required=False
    )
    maxPointsRedeemPercentage = serializers.IntegerField(source='max_points_redeem_percentage', required=False)
    pointsExpiryDays = serializers.IntegerField(source='points_expiry_days', required=False)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = RewardSetting
        fields = [
            'pointToCurrencyRate', 'pointsPerBooking', 'minBookingAmountForPoints',
            'maxPointsRedeemPercentage', 'pointsExpiryDays', 'updatedAt'
        ]


class RewardSettingUpdateSerializer(RewardSettingSerializer):
    # Диапазоны проверяет RewardService, points_per_booking он поднимает до 1
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)

    class Meta(RewardSettingSerializer.Meta):
        fields = RewardSettingSerializer.Meta.fields + ['reason']


class RewardSettingChangeSerializer(serializers.ModelSerializer):
    class Meta:
        model = RewardSettingChange
        fields = ['id', 'changed_by', 'changed_at', 'ip_address', 'changes', 'reason']


class RewardHistorySerializer(serializers.ModelSerializer):
    booking_id = serializers.CharField(source='booking.booking_id', read_only=True, default=None)

    class Meta:
        model = RewardHistory
        fields = [
            'id', 'action', 'points', 'booking_id', 'note', 'created_by',
            'expires_at', 'expired', 'created_at'
        ]


class UserRewardSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = UserReward
        fields = [
            'id', 'user', 'email', 'username', 'total_points',
            'lifetime_earned', 'lifetime_used', 'created_at', 'updated_at'
        ]


class ModifyPointsSerializer(serializers.Serializer):
    userId = serializers.IntegerField()
    points = serializers.IntegerField(min_value=1)
    action = serializers.ChoiceField(choices=[RewardHistory.ACTION_ADMIN_ADDED, RewardHistory.ACTION_ADMIN_REMOVED])
    note = serializers.CharField(required=False, allow_blank=True, max_length=500)
