from __future__ import annotations

import os

import django


os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")
os.environ.setdefault("OPENAQ_API_KEY", "")
os.environ.setdefault("OPENWEATHERMAP_API_KEY", "")

django.setup()
