from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Bin

User = get_user_model()


class BinSerializer(serializers.ModelSerializer):
    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)

    class Meta:
        model = Bin
        fields = [
            'id',
            'bin_id',
            'owner',
            'owner_name',
            'status',
            'latitude',
            'longitude',
            'address',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class BinCreateSerializer(serializers.ModelSerializer):
    """
    Residents register their own bins (owner is forced to them);
    admins may register a bin for any owner.
    """
    owner = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(),
        required=False,
    )

    class Meta:
        model = Bin
        fields = ['bin_id', 'owner', 'status', 'latitude', 'longitude', 'address']

    def validate(self, data):
        if (data.get('latitude') is None) != (data.get('longitude') is None):
            raise serializers.ValidationError("Latitude and longitude must be provided together.")
        return data


class BinStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Bin.STATUS_CHOICES)


class BinNearbySerializer(BinSerializer):
    distance_m = serializers.FloatField(read_only=True)

    class Meta(BinSerializer.Meta):
        fields = BinSerializer.Meta.fields + ['distance_m']
