from django.contrib import admin

from .models import Bin


@admin.register(Bin)
class BinAdmin(admin.ModelAdmin):
    list_display = ('bin_id', 'owner', 'status', 'address', 'updated_at')
    list_filter = ('status',)
    search_fields = ('bin_id', 'address')
