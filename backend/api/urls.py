"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import AqiView, HealthView

urlpatterns = [
    path("aqi", AqiView.as_view(), name="aqi"),
    path("health", HealthView.as_view(), name="health"),
]
