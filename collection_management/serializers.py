from rest_framework import serializers
from .models import CollectionRecord


class CollectionRecordSerializer(serializers.ModelSerializer):
    worker_name = serializers.CharField(source="worker.get_full_name", read_only=True)

    class Meta:
        model = CollectionRecord
        fields = [
            "id",
            "bin_id",
            "worker",
            "worker_name",
            "bin_location",
            "bin_owner",
            "weight",
            "fill_level",
            "waste_type",
            "collection_date",
            "collection_day",
            "status",
            "reason",
            "sensor_data",
            "created_at",
        ]
        read_only_fields = fields


class CollectionRecordCreateSerializer(serializers.Serializer):
    """
    Input for recording a collection. Workers always record as themselves;
    admins may record on behalf of a worker.
    """
    bin_id = serializers.CharField(max_length=50)
    worker = serializers.IntegerField(required=False)
    status = serializers.ChoiceField(choices=CollectionRecord.STATUS_CHOICES, default=CollectionRecord.COLLECTED)
    weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True)
    fill_level = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    waste_type = serializers.CharField(max_length=50, required=False, allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True)
    sensor_data = serializers.JSONField(required=False)
    collection_date = serializers.DateTimeField(required=False)

    def validate_sensor_data(self, value):
        if value is not None and not isinstance(value, dict):
            raise serializers.ValidationError("Sensor data must be a JSON object.")
        return value


class WorkerCollectionStatsSerializer(serializers.Serializer):
    worker_id = serializers.IntegerField()
    total_collections = serializers.IntegerField()
    collected_count = serializers.IntegerField()
    override_count = serializers.IntegerField()
    missed_count = serializers.IntegerField()
    failed_count = serializers.IntegerField()
    total_weight = serializers.DecimalField(max_digits=12, decimal_places=2)
