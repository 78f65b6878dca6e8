from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['booking_id', 'user', 'room', 'start_date', 'end_date', 'start_time', 'status', 'created_at']
    list_filter = ['status', 'space_type', 'start_date']
    search_fields = ['booking_id', 'user__username', 'user__email', 'room__name']
    ordering = ['-created_at']
    readonly_fields = ['booking_id', 'time_slots', 'created_at', 'updated_at']
