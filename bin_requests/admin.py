from django.contrib import admin

from .models import BinRequest


@admin.register(BinRequest)
class BinRequestAdmin(admin.ModelAdmin):
    list_display = ('request_id', 'user', 'request_type', 'item_type', 'quantity', 'total_amount', 'status',
                    'created_at')
    list_filter = ('status', 'request_type')
    search_fields = ('request_id', 'delivery_address')
    readonly_fields = ('request_id', 'unit_price', 'total_amount', 'created_at', 'updated_at', 'delivered_at')
