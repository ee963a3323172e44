"""Global pytest configuration."""

import os

# Keep settings hermetic before any imports
os.environ.setdefault("GEOCODE_ON_LOAD", "false")
os.environ.setdefault("AUTH_SECRET", "test-secret-0123456789abcdef012345")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "")
os.environ.setdefault("OPENWEATHER_API_KEY", "")
