"""Indoor object guidance from WiFi fingerprints and compass heading."""

__version__ = "0.1.0"
