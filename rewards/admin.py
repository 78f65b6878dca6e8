from django.contrib import admin

from .models import RewardHistory, RewardSetting, RewardSettingChange, UserReward


@admin.register(RewardSetting)
class RewardSettingAdmin(admin.ModelAdmin):
    list_display = ['point_to_currency_rate', 'points_per_booking', 'min_booking_amount_for_points',
                    'max_points_redeem_percentage', 'points_expiry_days', 'updated_at']


@admin.register(RewardSettingChange)
class RewardSettingChangeAdmin(admin.ModelAdmin):
    list_display = ['changed_by', 'changed_at', 'ip_address', 'reason']
    readonly_fields = ['setting', 'changed_by', 'changed_at', 'ip_address', 'changes', 'reason']


class RewardHistoryInline(admin.TabularInline):
    model = RewardHistory
    fk_name = 'user_reward'
    extra = 0
    readonly_fields = ['action', 'points', 'booking', 'note', 'created_by', 'expires_at', 'expired', 'created_at']


@admin.register(UserReward)
class UserRewardAdmin(admin.ModelAdmin):
    list_display = ['user', 'total_points', 'lifetime_earned', 'lifetime_used', 'updated_at']
    search_fields = ['user__email', 'user__username']
    readonly_fields = ['total_points', 'lifetime_earned', 'lifetime_used']
    inlines = [RewardHistoryInline]
