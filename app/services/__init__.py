from .interest_service import InterestService, InterestAction
from .ranking_service import RankingService, CandidateView, RankingResult
from .side_effect_dispatcher import SideEffectDispatcher
from .notification_service import NotificationService
from .email_service import EmailService

__all__ = [
    "InterestService",
    "InterestAction",
    "RankingService",
    "CandidateView",
    "RankingResult",
    "SideEffectDispatcher",
    "NotificationService",
    "EmailService",
]
