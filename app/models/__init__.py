from .user import User
from .profile import Profile, ApprovalStatus
from .interest import Interest, InterestStatus
from .declined_profile import DeclinedProfile, DeclinedSource
from .user_stats import UserStats
from .engagement_points import EngagementPoints
from .notification import Notification, NotificationType, DeliveryStatus

__all__ = [
    "User", "Profile", "ApprovalStatus", "Interest", "InterestStatus",
    "DeclinedProfile", "DeclinedSource", "UserStats", "EngagementPoints",
    "Notification", "NotificationType", "DeliveryStatus"
]
