"""SQLAlchemy models exposed for metadata creation and imports."""
from .site import BACKGROUND_SLOTS, SiteBackground
from .user import User
from .vehicle import Vehicle

__all__ = ["User", "Vehicle", "SiteBackground", "BACKGROUND_SLOTS"]
