from django.contrib import admin

from .models import CollectionRecord


@admin.register(CollectionRecord)
class CollectionRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'bin_id', 'worker', 'status', 'collection_day', 'weight')
    list_filter = ('status', 'collection_day')
    search_fields = ('bin_id', 'bin_owner', 'reason')
    readonly_fields = ('collection_day', 'created_at')
