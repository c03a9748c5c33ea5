from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from rest_framework import serializers
from backend.theaters.models import Theater, TheaterUser
from .models import User, AuditLog


class UserSerializer(serializers.ModelSerializer):
    theater_count = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'is_active', 'is_staff',
                  'is_superuser', 'theater_count', 'last_login', 'created_at', 'updated_at']
        read_only_fields = ['is_superuser', 'last_login', 'created_at', 'updated_at']

    def get_theater_count(self, obj):
        return obj.theater_memberships.filter(is_active=True).count()


class UserCreateSerializer(serializers.ModelSerializer):
    """Creates a user and, when ``theater`` is given, their membership in it"""
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)
    theater = serializers.PrimaryKeyRelatedField(queryset=Theater.objects.all(), required=False, write_only=True)
    role = serializers.ChoiceField(choices=TheaterUser.ROLE_CHOICES, required=False, write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone',
                  'theater', 'role']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        if attrs.get('role') and not attrs.get('theater'):
            raise serializers.ValidationError({"theater": "A role needs a theater"})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        theater = validated_data.pop('theater', None)
        role = validated_data.pop('role', None) or TheaterUser.ROLE_STAFF

        user = User(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        if theater is not None:
            TheaterUser.objects.create(theater=theater, user=user, role=role)
        return user


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)
    theater_name = serializers.CharField(source='theater.name', read_only=True, default=None)
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'theater', 'theater_name', 'action', 'action_display', 'model_name',
                  'object_id', 'object_name', 'object_reference', 'changes', 'ip_address', 'created_at']
