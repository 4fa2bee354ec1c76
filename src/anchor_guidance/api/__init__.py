"""HTTP API for guidance clients."""

from anchor_guidance.api.server import GuidanceAPIServer

__all__ = ["GuidanceAPIServer"]
