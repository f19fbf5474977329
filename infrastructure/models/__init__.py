"""Infrastructure models package exports."""
from .base import Base, metadata
from .property import PropertyModel
from .platform_settings import PlatformSettingsModel

__all__ = [
    "Base",
    "metadata",
    "PropertyModel",
    "PlatformSettingsModel",
]
