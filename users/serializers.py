from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.validators import UnicodeUsernameValidator
from rest_framework import serializers
from rest_framework.validators import UniqueValidator
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .directory import display_label_for

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Public view of an account."""

    display_label = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "display_label", "date_joined"]
        read_only_fields = ["id", "username", "date_joined"]

    def get_display_label(self, obj) -> str:
        return display_label_for(obj)


class RegisterSerializer(serializers.ModelSerializer):
    username = serializers.CharField(
        min_length=3,
        max_length=150,
        validators=[
            UnicodeUsernameValidator(),
            UniqueValidator(queryset=User.objects.all()),
        ],
    )
    email = serializers.EmailField(validators=[UniqueValidator(queryset=User.objects.all())])
    password = serializers.CharField(write_only=True, style={"input_type": "password"})
    password2 = serializers.CharField(write_only=True, style={"input_type": "password"})

    class Meta:
        model = User
        fields = ["username", "email", "first_name", "last_name", "password", "password2"]

    # username must not be numeric-only
    def validate_username(self, value: str) -> str:
        if value.isdigit():
            raise serializers.ValidationError("Username cannot be only numbers.")
        return value

    def validate(self, attrs):
        if attrs["password"] != attrs["password2"]:
            raise serializers.ValidationError({"password2": "Passwords do not match."})
        validate_password(attrs["password"])
        return attrs

    def create(self, validated_data):
        validated_data.pop("password2")
        password = validated_data.pop("password")
        return User.objects.create_user(password=password, **validated_data)


class LabelledTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Username + password login returning SimpleJWT refresh/access tokens.

    Both tokens carry a ``display_label`` claim so that real-time
    connections can label the sender without a database round trip.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["display_label"] = display_label_for(user)
        return token
