from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from .models import Appointment, AppointmentStatusLog, Rider, VendorService, VendorStore


@admin.register(VendorStore)
class VendorStoreAdmin(admin.ModelAdmin):
    list_display = ('name', 'is_active', 'instant_booking', 'opens_at', 'closes_at')
    list_filter = ('is_active', 'instant_booking')
    search_fields = ('name', 'contact_email')


@admin.register(VendorService)
class VendorServiceAdmin(SimpleHistoryAdmin):
    list_display = ('name', 'store', 'price_min', 'price_max', 'duration_minutes', 'is_active')
    list_filter = ('store', 'is_active')
    search_fields = ('name', 'description')
    list_editable = ('is_active',)


@admin.register(Rider)
class RiderAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone', 'is_active')
    search_fields = ('name', 'phone')


class AppointmentStatusLogInline(admin.TabularInline):
    model = AppointmentStatusLog
    fk_name = 'appointment'
    extra = 0
    can_delete = False
    readonly_fields = ('from_status', 'to_status', 'event', 'actor', 'reason', 'related_appointment', 'occurred_at')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = (
        'reference',
        'customer_name',
        'vendor_store',
        'service',
        'appointment_date',
        'appointment_time',
        'status',
        'total_amount',
    )
    list_filter = ('status', 'vendor_store', 'appointment_date')
    search_fields = ('reference', 'customer_name', 'customer_email', 'customer_phone')
    # Los cambios de estado y montos pasan por los servicios del motor.
    readonly_fields = (
        'reference',
        'status',
        'service_price',
        'additional_charges',
        'discount_amount',
        'total_amount',
        'confirmed_at',
        'started_at',
        'completed_at',
        'cancelled_at',
        'rescheduled_at',
        'no_show_at',
        'rescheduled_to',
        'reschedule_count',
    )
    inlines = [AppointmentStatusLogInline]

    def has_delete_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False
