from django.contrib.auth import get_user_model
from rest_framework import serializers

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source="get_full_name", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "full_name",
            "first_name",
            "last_name",
            "phone_number",
            "email",
            "role",
            "address",
            "reward_points",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["id", "username", "reward_points", "created_at"]


class LoginSerializer(serializers.Serializer):
    identifier = serializers.CharField(required=True)
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        identifier = attrs.get("identifier")
        password = attrs.get("password")

        # We allow login with: phone_number OR email OR username
        user = (
            User.objects.filter(phone_number=identifier).first()
            or User.objects.filter(email=identifier).first()
            or User.objects.filter(username=identifier).first()
        )

        if user is None:
            raise serializers.ValidationError("User not found.")

        if not user.check_password(password):
            raise serializers.ValidationError("Invalid password.")

        attrs["user"] = user
        return attrs
