"""
Authentication and registration endpoints for the users app.

This module exposes JWT obtain/refresh views, a registration endpoint
and the authenticated user's own record.
"""
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import LabelledTokenObtainPairView, MeView, RegisterView

urlpatterns = [
    path("token/", LabelledTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("register/", RegisterView.as_view(), name="register"),
    path("me/", MeView.as_view(), name="me"),
]
