from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.models import AuditLog, Contact

User = get_user_model()


class EmailOrUsernameTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = getattr(user, "role", None)
        token["is_superuser"] = user.is_superuser
        return token

    def validate(self, attrs):
        username = attrs.get("username", "")
        if username and "@" in username:
            user = User.objects.filter(email__iexact=username.strip()).first()
            if user is not None:
                attrs["username"] = user.get_username()
        return super().validate(attrs)


class ContactSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contact
        fields = ["id", "name", "email", "phone", "subject", "message", "is_read", "created_at"]
        read_only_fields = ["id", "is_read", "created_at"]


class SettingsPatchSerializer(serializers.Serializer):
    """Accepts a flat ``{key: value}`` map; values are stored as text."""

    def to_internal_value(self, data):
        if not isinstance(data, dict) or not data:
            raise serializers.ValidationError({"non_field_errors": ["Expected a non-empty object of settings."]})
        errors = {}
        values = {}
        for key, value in data.items():
            key = str(key).strip()
            if not key or len(key) > 64:
                errors[key or "key"] = ["Setting keys must be 1-64 characters."]
            elif isinstance(value, (dict, list)):
                errors[key] = ["Setting values must be scalar."]
            elif isinstance(value, bool):
                values[key] = "true" if value else "false"
            else:
                values[key] = "" if value is None else str(value)
        if errors:
            raise serializers.ValidationError(errors)
        return values


class AuditLogSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source="actor.username", read_only=True)

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "actor",
            "actor_username",
            "action",
            "entity",
            "entity_id",
            "before_snapshot",
            "after_snapshot",
            "request_id",
            "created_at",
        ]
        read_only_fields = fields
