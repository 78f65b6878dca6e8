from django.contrib import admin

from .models import BookedSlot, Room, RoomAvailability, SpaceType


@admin.register(SpaceType)
class SpaceTypeAdmin(admin.ModelAdmin):
    list_display = ('name', 'slot_behavior', 'slot_duration', 'bookings_count', 'last_booked_at', 'is_active')
    list_filter = ('slot_behavior', 'is_active')
    search_fields = ('name',)
    readonly_fields = ('bookings_count', 'last_booked_at', 'created_at', 'updated_at')


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ('name', 'location', 'space_type', 'capacity', 'price_per_hour', 'is_active')
    list_filter = ('space_type', 'is_active')
    search_fields = ('name', 'location')


class BookedSlotInline(admin.TabularInline):
    model = BookedSlot
    extra = 0
    readonly_fields = ('label', 'count')


@admin.register(RoomAvailability)
class RoomAvailabilityAdmin(admin.ModelAdmin):
    list_display = ('room', 'date', 'available_size')
    list_filter = ('date',)
    inlines = [BookedSlotInline]
