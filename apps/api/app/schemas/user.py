"""User schemas."""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    CHANNEL_OWNER = "CHANNEL_OWNER"
    PREMIUM_USER = "PREMIUM_USER"
    FREE = "FREE"
