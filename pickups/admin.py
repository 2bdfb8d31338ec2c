from django.contrib import admin

from .models import PickupRequest


@admin.register(PickupRequest)
class PickupRequestAdmin(admin.ModelAdmin):
    list_display = ('request_id', 'user_name', 'waste_type', 'pickup_type', 'status', 'payment_status',
                    'final_amount', 'created_at')
    list_filter = ('status', 'payment_status', 'pickup_type', 'waste_type')
    search_fields = ('user_name', 'user_email', 'address', 'city')
    readonly_fields = ('base_amount', 'urgency_fee', 'total_amount', 'final_amount', 'created_at', 'updated_at')
