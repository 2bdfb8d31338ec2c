from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import BinRequest

User = get_user_model()


class BinRequestSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.get_full_name', read_only=True)

    class Meta:
        model = BinRequest
        fields = [
            'request_id',
            'user',
            'user_name',
            'request_type',
            'item_type',
            'quantity',
            'unit_price',
            'total_amount',
            'delivery_address',
            'special_instructions',
            'latitude',
            'longitude',
            'status',
            'payment_reference',
            'created_at',
            'updated_at',
            'delivered_at',
            'cancelled_at',
        ]
        read_only_fields = fields


class BinRequestCreateSerializer(serializers.Serializer):
    """
    Prices are looked up from the catalogue; the client only names the item.
    """
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False)
    request_type = serializers.ChoiceField(choices=BinRequest.REQUEST_TYPE_CHOICES)
    item_type = serializers.CharField(max_length=50)
    quantity = serializers.IntegerField(min_value=1, default=1)
    delivery_address = serializers.CharField(max_length=255)
    special_instructions = serializers.CharField(required=False, allow_blank=True, default="")
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)


class BinRequestStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BinRequest.STATUS_CHOICES)


class BinRequestPaymentSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(max_length=100)


class BinRequestStatsSerializer(serializers.Serializer):
    total_requests = serializers.IntegerField()
    status_counts = serializers.DictField(child=serializers.IntegerField())
    total_revenue = serializers.DecimalField(max_digits=12, decimal_places=2)
    recent_requests = serializers.IntegerField()
