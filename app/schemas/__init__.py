from .interest import (
    InterestCreate,
    InterestRespond,
    Interest,
    DeclineCreate,
    ContactInfo,
    InterestResult,
    InterestList,
    MutualStatus,
    DeclinedProfile,
    DeclinedProfileList,
)
from .ranking import (
    MatchScore,
    RankCandidate,
    RankRequest,
    RankedCandidate,
    RankResponse,
    BoostStatus,
)
from .notification import (
    NotificationResponse,
    NotificationListResponse,
    MarkReadResponse,
)
