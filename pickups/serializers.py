from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import PickupRequest

User = get_user_model()


class PickupRequestListSerializer(serializers.ModelSerializer):
    """
    Lightweight serializer for listing requests
    """

    class Meta:
        model = PickupRequest
        fields = [
            'request_id',
            'user',
            'user_name',
            'waste_type',
            'pickup_type',
            'preferred_date_time',
            'scheduled_date_time',
            'city',
            'final_amount',
            'payment_method',
            'payment_status',
            'status',
            'assigned_worker_name',
            'created_at',
        ]
        read_only_fields = fields


class PickupRequestDetailSerializer(serializers.ModelSerializer):
    """
    Detailed serializer for viewing a specific request
    """

    class Meta:
        model = PickupRequest
        fields = [
            'request_id',
            'user',
            'user_name',
            'user_email',
            'user_phone',

            'waste_type',
            'item_description',
            'item_images',
            'estimated_weight',
            'special_instructions',

            'pickup_type',
            'preferred_date_time',
            'scheduled_date_time',
            'pickup_location',
            'address',
            'city',
            'postal_code',
            'latitude',
            'longitude',

            'base_amount',
            'urgency_fee',
            'total_amount',
            'reward_points_used',
            'final_amount',

            'payment_method',
            'payment_status',
            'payment_reference',
            'payment_date',
            'last_reminder_sent',

            'status',
            'assigned_worker',
            'assigned_worker_name',
            'admin_notes',
            'cancellation_reason',

            'created_at',
            'updated_at',
            'completed_at',
            'cancelled_at',
        ]
        read_only_fields = fields


class PickupRequestCreateSerializer(serializers.Serializer):
    """
    Input for creating a request. Amounts are never accepted from the
    client; they are computed from the waste/pickup type and weight.
    """
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False)
    waste_type = serializers.ChoiceField(choices=PickupRequest.WASTE_TYPE_CHOICES)
    pickup_type = serializers.ChoiceField(choices=PickupRequest.PICKUP_TYPE_CHOICES,
                                          default=PickupRequest.REGULAR)
    estimated_weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0,
                                                required=False, allow_null=True)
    reward_points_used = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PickupRequest.PAYMENT_METHOD_CHOICES)
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    card_token = serializers.CharField(max_length=255, required=False, allow_blank=True, write_only=True)

    item_description = serializers.CharField(required=False, allow_blank=True)
    item_images = serializers.ListField(child=serializers.URLField(), required=False)
    special_instructions = serializers.CharField(required=False, allow_blank=True)
    preferred_date_time = serializers.DateTimeField(required=False, allow_null=True)
    pickup_location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)

    def validate(self, data):
        if (data.get('latitude') is None) != (data.get('longitude') is None):
            raise serializers.ValidationError("Latitude and longitude must be provided together.")
        return data


class PickupRequestUpdateSerializer(serializers.Serializer):
    """
    Partial update. Only the supplied fields are applied; status changes
    are checked against the lifecycle by the service.
    """
    status = serializers.ChoiceField(choices=PickupRequest.STATUS_CHOICES, required=False)
    assigned_worker = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(role='worker'),
        required=False,
        allow_null=True,
    )
    item_description = serializers.CharField(required=False, allow_blank=True)
    item_images = serializers.ListField(child=serializers.URLField(), required=False)
    estimated_weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0,
                                                required=False, allow_null=True)
    special_instructions = serializers.CharField(required=False, allow_blank=True)
    preferred_date_time = serializers.DateTimeField(required=False, allow_null=True)
    scheduled_date_time = serializers.DateTimeField(required=False, allow_null=True)
    pickup_location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    admin_notes = serializers.CharField(required=False, allow_blank=True)


class PaymentSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=PickupRequest.PAYMENT_METHOD_CHOICES)
    # compared numerically against final_amount, so "37.5" and "37.500" both match
    amount = serializers.DecimalField(max_digits=None, decimal_places=None, min_value=0)
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    card_token = serializers.CharField(max_length=255, required=False, allow_blank=True, write_only=True)


class CancelSerializer(serializers.Serializer):
    cancellation_reason = serializers.CharField(required=False, allow_blank=True, default="")


class RescheduleSerializer(serializers.Serializer):
    preferred_date_time = serializers.DateTimeField(required=False, allow_null=True)
    admin_notes = serializers.CharField(required=False, allow_blank=True)


class FeeCalculationSerializer(serializers.Serializer):
    waste_type = serializers.ChoiceField(choices=PickupRequest.WASTE_TYPE_CHOICES)
    pickup_type = serializers.ChoiceField(choices=PickupRequest.PICKUP_TYPE_CHOICES,
                                          default=PickupRequest.REGULAR)
    estimated_weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0,
                                                required=False, allow_null=True)
    reward_points_used = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class FeeBreakdownSerializer(serializers.Serializer):
    base_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    urgency_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    total_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    reward_points_used = serializers.IntegerField()
    reward_deduction = serializers.DecimalField(max_digits=10, decimal_places=2)
    final_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    calculation_breakdown = serializers.CharField()


class PickupStatsSerializer(serializers.Serializer):
    total_requests = serializers.IntegerField()
    pending_requests = serializers.IntegerField()
    scheduled_requests = serializers.IntegerField()
    completed_requests = serializers.IntegerField()
    cancelled_requests = serializers.IntegerField()
    emergency_requests = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_payments = serializers.DecimalField(max_digits=14, decimal_places=2)
    requests_this_week = serializers.IntegerField()
    requests_this_month = serializers.IntegerField()
