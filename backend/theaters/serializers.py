from django.contrib.auth import get_user_model
from rest_framework import serializers
from .models import Theater, TheaterUser
from .permissions import ROLE_CAPABILITIES

User = get_user_model()


class TheaterSerializer(serializers.ModelSerializer):
    class Meta:
        model = Theater
        fields = ['id', 'name', 'code', 'email', 'phone', 'address', 'tax_rate', 'currency',
                  'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class TheaterUserSerializer(serializers.ModelSerializer):
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = TheaterUser
        fields = ['id', 'theater', 'user', 'username', 'email', 'role', 'capabilities',
                  'is_active', 'created_at', 'updated_at']
        read_only_fields = ['theater', 'created_at', 'updated_at']

    def get_capabilities(self, obj):
        return sorted(ROLE_CAPABILITIES.get(obj.role, ()))

    def validate_user(self, value):
        theater = self.context.get('theater')
        if theater is None:
            return value
        existing = TheaterUser.objects.filter(theater=theater, user=value)
        if self.instance:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("User is already a member of this theater")
        return value
