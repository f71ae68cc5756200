"""Route modules for the Car Show Manager API."""
from . import admin, auth, chat, profile, site, staff, vehicles

__all__ = ["admin", "auth", "chat", "profile", "site", "staff", "vehicles"]
