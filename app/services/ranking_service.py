"""
Candidate ranking: the order in which profiles are surfaced to a viewer.

Three tiers, each breaking ties of the one before:

1. Referral-boosted profiles first
2. Profiles that already sent the viewer an interest
3. Descending compatibility percentage

A profile is boost-eligible with at least ``referral_boost_threshold``
referrals. Its boost runs ``referral_boost_days`` from ``referral_boost_start``;
that start is written lazily, the first time an eligible profile is ranked.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.interest import InterestStatus
from app.repositories.declined_profile_repository import DeclinedProfileRepository
from app.repositories.interest_repository import InterestRepository
from app.repositories.profile_repository import ProfileRepository
from app.services.exceptions import NotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateView:
    profile_id: UUID
    match_percentage: float
    user_id: Optional[UUID] = None
    referral_code: Optional[str] = None
    referral_boost_start: Optional[datetime] = None
    they_liked_me_first: bool = False
    boosted: bool = False


@dataclass
class RankingResult:
    candidates: list[CandidateView]
    # Profiles whose referral_boost_start must be set to the ranking time
    boost_activations: list[UUID] = field(default_factory=list)


@dataclass
class BoostStatus:
    referral_code: Optional[str]
    referral_count: int
    boost_active: bool
    boost_expires_at: Optional[datetime] = None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RankingService:
    """Service for ordering candidate profiles for a viewer."""

    def __init__(
        self,
        profile_repo: Optional[ProfileRepository] = None,
        interest_repo: Optional[InterestRepository] = None,
        declined_repo: Optional[DeclinedProfileRepository] = None,
        boost_threshold: Optional[int] = None,
        boost_days: Optional[int] = None
    ):
        self.profile_repo = profile_repo or ProfileRepository()
        self.interest_repo = interest_repo or InterestRepository()
        self.declined_repo = declined_repo or DeclinedProfileRepository()
        self.boost_threshold = boost_threshold if boost_threshold is not None else settings.referral_boost_threshold
        self.boost_window = timedelta(days=boost_days if boost_days is not None else settings.referral_boost_days)

    def is_boost_window_open(self, boost_start: datetime, now: datetime) -> bool:
        """A boost is active while strictly less than the window has elapsed."""
        return _as_utc(now) - _as_utc(boost_start) < self.boost_window

    def rank_candidates(
        self,
        candidates: Iterable[CandidateView],
        referral_counts: Mapping[str, int],
        now: datetime
    ) -> RankingResult:
        """
        Order candidates. Pure: reads nothing and writes nothing.

        Args:
            candidates: Candidate views with reciprocity and score filled in
            referral_counts: Referral count per referral code
            now: Ranking time

        Returns:
            RankingResult with the ordered candidates (``boosted`` set) and the
            profile ids whose boost start the caller must persist

        Example:
            result = service.rank_candidates(views, {"ANU123": 5}, now)
            ordered_ids = [c.profile_id for c in result.candidates]
        """
        resolved: list[CandidateView] = []
        activations: list[UUID] = []

        for candidate in candidates:
            count = referral_counts.get(candidate.referral_code, 0) if candidate.referral_code else 0
            boosted = False
            if count >= self.boost_threshold:
                if candidate.referral_boost_start is None:
                    boosted = True
                    activations.append(candidate.profile_id)
                else:
                    boosted = self.is_boost_window_open(candidate.referral_boost_start, now)
            resolved.append(replace(candidate, boosted=boosted))

        # sorted() is stable, so equal keys keep their input order
        ordered = sorted(
            resolved,
            key=lambda c: (not c.boosted, not c.they_liked_me_first, -c.match_percentage),
        )
        return RankingResult(candidates=ordered, boost_activations=activations)

    async def rank_feed(
        self,
        db: AsyncSession,
        viewer_id: UUID,
        scored: Iterable[tuple[UUID, float]],
        now: Optional[datetime] = None
    ) -> RankingResult:
        """
        Rank a viewer's feed from upstream (profile_id, match percentage) pairs.

        Dropped from the feed:

        - unknown profiles and the viewer's own profile
        - users the viewer declined, and users who declined the viewer
        - users the viewer already sent an interest to
        - users with an accepted connection to the viewer in either direction

        Only a pending interest from the candidate sets ``they_liked_me_first``.
        Lazy boost activations are persisted and committed before returning.
        """
        now = now or datetime.now(timezone.utc)
        scored = list(scored)

        profiles = await self.profile_repo.get_many(db, [profile_id for profile_id, _ in scored])
        candidate_ids = [
            profile.user_id for profile in profiles.values() if profile.user_id != viewer_id
        ]

        excluded = set(await self.declined_repo.get_declined_user_ids(db, viewer_id))
        excluded |= await self.declined_repo.get_user_ids_declining(db, viewer_id)
        # Covers accepted connections the viewer initiated
        excluded |= await self.interest_repo.get_receiver_ids_sent_by(db, viewer_id, candidate_ids)
        excluded |= await self.interest_repo.get_sender_ids_to(
            db, viewer_id, candidate_ids, status=InterestStatus.accepted
        )

        kept = []
        for profile_id, percentage in scored:
            profile = profiles.get(profile_id)
            if profile is None or profile.user_id == viewer_id or profile.user_id in excluded:
                continue
            kept.append((profile, percentage))

        liked_me = await self.interest_repo.get_sender_ids_to(
            db, viewer_id, [profile.user_id for profile, _ in kept], status=InterestStatus.pending
        )
        referral_counts = await self.profile_repo.get_referral_counts(
            db, [profile.referral_code for profile, _ in kept]
        )

        views = [
            CandidateView(
                profile_id=profile.id,
                user_id=profile.user_id,
                match_percentage=percentage,
                referral_code=profile.referral_code,
                referral_boost_start=profile.referral_boost_start,
                they_liked_me_first=profile.user_id in liked_me,
            )
            for profile, percentage in kept
        ]

        result = self.rank_candidates(views, referral_counts, now)

        if result.boost_activations:
            updated = await self.profile_repo.activate_boosts(db, result.boost_activations, now)
            await db.commit()
            logger.info(
                f"Activated referral boost for {updated} profile(s) while ranking feed of {viewer_id}"
            )

        return result

    async def get_boost_status(
        self,
        db: AsyncSession,
        user_id: UUID,
        now: Optional[datetime] = None
    ) -> BoostStatus:
        """
        Report a user's referral boost.

        Raises:
            NotFound: If the user has no profile
        """
        now = now or datetime.now(timezone.utc)
        profile = await self.profile_repo.get_by_user_id(db, user_id)
        if not profile:
            raise NotFound("Profile not found")

        count = 0
        if profile.referral_code:
            counts = await self.profile_repo.get_referral_counts(db, [profile.referral_code])
            count = counts.get(profile.referral_code, 0)

        active = False
        expires_at = None
        if profile.referral_boost_start and count >= self.boost_threshold:
            if self.is_boost_window_open(profile.referral_boost_start, now):
                active = True
                expires_at = _as_utc(profile.referral_boost_start) + self.boost_window

        return BoostStatus(
            referral_code=profile.referral_code,
            referral_count=count,
            boost_active=active,
            boost_expires_at=expires_at,
        )
