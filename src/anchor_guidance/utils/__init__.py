"""Utility functions and configuration."""

from anchor_guidance.utils.config import EngineConfig, ServerConfig

__all__ = ["EngineConfig", "ServerConfig"]
