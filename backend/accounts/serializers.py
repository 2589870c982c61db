from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth import password_validation

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """User summary returned by auth and admin endpoints (never the credential)."""
    created_at = serializers.DateTimeField(source="date_joined", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "email", "phone", "role", "created_at"]
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    """Serializer for login (email/password)"""
    email = serializers.CharField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class RegisterSerializer(serializers.Serializer):
    """Self-service registration. Admin accounts are never self-registered."""
    SELF_SERVICE_ROLES = [User.ROLE_RIDER, User.ROLE_DRIVER]

    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    role = serializers.ChoiceField(choices=SELF_SERVICE_ROLES, required=False, default=User.ROLE_RIDER)

    def validate_email(self, value):
        return User.objects.normalize_email_address(value)

    def validate_password(self, value):
        password_validation.validate_password(value)
        return value


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
