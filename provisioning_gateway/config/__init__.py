"""Configuration module for the provisioning gateway."""
from .settings import GatewayConfig, load_settings

__all__ = ["GatewayConfig", "load_settings"]
