# Repositories package
from .base import BaseRepository
from .interest_repository import InterestRepository
from .declined_profile_repository import DeclinedProfileRepository
from .profile_repository import ProfileRepository
from .stats_repository import StatsRepository
from .notification_repository import NotificationRepository

__all__ = [
    "BaseRepository",
    "InterestRepository",
    "DeclinedProfileRepository",
    "ProfileRepository",
    "StatsRepository",
    "NotificationRepository",
]
