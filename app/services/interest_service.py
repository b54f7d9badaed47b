"""
Interest service: the interest lifecycle state machine.

An interest moves through these states:

    pending  -> accepted | rejected | <deleted>
    rejected -> accepted                 (reconsider)
    accepted -> withdrawn

``withdrawn`` and deletion are terminal; nothing returns to ``pending``.

Express and respond calls hold a per-pair lock from their first read until
the commit, so two callers racing on the same pair see each other's writes.
The lock is an in-process asyncio lock plus, on Postgres, an advisory lock
that serializes API processes.
Stats, notifications, emails and points are dispatched only after commit, in
a background task, and never affect the result or delay the response.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID
import enum
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.locks import PairLockRegistry, pair_locks
from app.models.declined_profile import DeclinedProfile, DeclinedSource
from app.models.interest import Interest, InterestStatus
from app.models.notification import NotificationType
from app.models.profile import ApprovalStatus, Profile
from app.repositories.declined_profile_repository import DeclinedProfileRepository
from app.repositories.interest_repository import InterestRepository
from app.repositories.profile_repository import ProfileRepository
from app.services.exceptions import (
    DuplicateInterest,
    Forbidden,
    InvalidAction,
    InvalidTransition,
    NotFound,
    Unauthorized,
    VerificationRequired,
)
from app.services.side_effect_dispatcher import (
    SideEffectDispatcher,
    run_in_background,
    side_effect_dispatcher,
)

logger = logging.getLogger(__name__)


def _require_identity(user_id: Optional[UUID]) -> UUID:
    if user_id is None:
        raise Unauthorized("Authentication required")
    return user_id


class InterestAction(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    RECONSIDER = "reconsider"
    WITHDRAW = "withdraw"


# Points are awarded for answering an interest, not for undoing one
POINT_AWARDING_ACTIONS = {
    InterestAction.ACCEPT: "interest_accepted",
    InterestAction.REJECT: "interest_rejected",
}


@dataclass
class ContactInfo:
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    linkedin_profile: Optional[str] = None
    facebook_instagram: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "ContactInfo":
        user = profile.user
        return cls(
            name=user.name if user else None,
            email=user.email if user else None,
            phone=user.phone if user else None,
            linkedin_profile=profile.linkedin_profile,
            facebook_instagram=profile.facebook_instagram,
        )


@dataclass
class InterestResult:
    interest: Interest
    mutual: bool = False
    deleted: bool = False
    contact_info: Optional[ContactInfo] = None
    message: str = ""


@dataclass
class MutualStatus:
    sent_by_me: bool
    received_from_them: bool
    mutual: bool
    sent_at: Optional[datetime] = None
    received_at: Optional[datetime] = None


@dataclass
class _PendingEffects:
    """Side effects collected inside the lock and dispatched after commit."""
    interest_stats: list[tuple[UUID, UUID]] = field(default_factory=list)
    mutual_matches: list[tuple[UUID, UUID]] = field(default_factory=list)
    notifications: list[tuple[NotificationType, UUID, dict]] = field(default_factory=list)
    emails: list[tuple[NotificationType, UUID, dict]] = field(default_factory=list)
    points: list[tuple[str, UUID, UUID]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.interest_stats or self.mutual_matches or self.notifications
                    or self.emails or self.points)


class InterestService:
    """
    Service for the interest lifecycle.

    This service coordinates between repositories and implements:
    - Expressing interest, including mutual-match finalization
    - Accept / reject / reconsider / withdraw responses
    - Received and sent listings
    - Mutual status checks between a viewer and a profile
    """

    def __init__(
        self,
        interest_repo: Optional[InterestRepository] = None,
        profile_repo: Optional[ProfileRepository] = None,
        declined_repo: Optional[DeclinedProfileRepository] = None,
        dispatcher: Optional[SideEffectDispatcher] = None,
        locks: Optional[PairLockRegistry] = None
    ):
        """
        Initialize service with repositories.

        Args:
            interest_repo: InterestRepository instance (creates new if None)
            profile_repo: ProfileRepository instance (creates new if None)
            declined_repo: DeclinedProfileRepository instance (creates new if None)
            dispatcher: SideEffectDispatcher (module-level dispatcher if None)
            locks: PairLockRegistry (process-wide registry if None)
        """
        self.interest_repo = interest_repo or InterestRepository()
        self.profile_repo = profile_repo or ProfileRepository()
        self.declined_repo = declined_repo or DeclinedProfileRepository()
        self.dispatcher = dispatcher or side_effect_dispatcher
        self.locks = locks or pair_locks

    # ------------------------------------------------------------------
    # Express
    # ------------------------------------------------------------------
    async def express_interest(
        self,
        db: AsyncSession,
        sender_id: UUID,
        receiver_id: UUID,
        message: Optional[str] = None
    ) -> InterestResult:
        """
        Express interest from ``sender_id`` in ``receiver_id``.

        If the receiver already expressed interest in the sender, this is a
        mutual match: it is finalized only when the sender's own profile is
        approved, and both rows end up ``accepted``.

        Raises:
            Unauthorized: If there is no sender identity
            Forbidden: If a user expresses interest in themselves
            NotFound: If the sender has no profile or the receiver is not visible
            DuplicateInterest: If the sender already expressed interest (carries the record)
            VerificationRequired: If this would be a mutual match but the sender is not approved

        Example:
            result = await service.express_interest(db, me.id, them.id, "Hello!")
            if result.mutual:
                print(result.contact_info.email)
        """
        _require_identity(sender_id)
        if sender_id == receiver_id:
            raise Forbidden("You cannot express interest in yourself")

        sender_profile = await self.profile_repo.get_by_user_id(db, sender_id)
        if not sender_profile:
            raise NotFound("Create your profile before expressing interest")

        receiver_profile = await self.profile_repo.get_by_user_id(db, receiver_id)
        if not receiver_profile or not receiver_profile.is_visible:
            raise NotFound("Profile not found")

        effects = _PendingEffects()

        async with self.locks.hold(sender_id, receiver_id):
            await self.interest_repo.lock_pair(db, sender_id, receiver_id)
            existing = await self.interest_repo.get_by_pair(db, sender_id, receiver_id)
            if existing:
                raise DuplicateInterest(
                    "You have already expressed interest in this profile",
                    interest=existing,
                )

            reverse = await self.interest_repo.get_by_pair(
                db, receiver_id, sender_id, for_update=True
            )

            if reverse is None:
                interest = await self._create_interest(
                    db, sender_id, receiver_id, message, InterestStatus.pending
                )
                await db.commit()

                effects.interest_stats.append((sender_id, receiver_id))
                payload = {"interest_id": interest.id, "actor_user_id": sender_id,
                           "actor_profile_id": sender_profile.id}
                effects.notifications.append((NotificationType.NEW_INTEREST, receiver_id, payload))
                effects.emails.append((NotificationType.NEW_INTEREST, receiver_id, payload))
                result = InterestResult(interest=interest, message="Interest sent successfully")

            else:
                # Mutual interest: the sender must be verified to finalize it
                if sender_profile.approval_status != ApprovalStatus.approved:
                    logger.info(
                        f"Mutual interest {sender_id} <-> {receiver_id} blocked: sender not approved"
                    )
                    raise VerificationRequired(
                        "Your profile must be approved before a mutual match can be made",
                        would_be_mutual=True,
                    )

                await self.interest_repo.set_status(db, reverse, InterestStatus.accepted)
                interest = await self._create_interest(
                    db, sender_id, receiver_id, message, InterestStatus.accepted
                )
                await db.commit()

                effects.interest_stats.append((sender_id, receiver_id))
                effects.mutual_matches.append((sender_id, receiver_id))
                payload = {"interest_id": reverse.id, "actor_user_id": sender_id,
                           "actor_profile_id": sender_profile.id}
                effects.notifications.append((NotificationType.MUTUAL_MATCH, receiver_id, payload))
                effects.emails.append((NotificationType.INTEREST_ACCEPTED, receiver_id, payload))
                result = InterestResult(
                    interest=interest,
                    mutual=True,
                    contact_info=ContactInfo.from_profile(receiver_profile),
                    message="It's a match! You both expressed interest.",
                )

        logger.info(
            f"User {sender_id} expressed interest in {receiver_id} "
            f"(interest {result.interest.id}, mutual={result.mutual})"
        )
        self._dispatch(effects)
        return result

    async def _create_interest(
        self,
        db: AsyncSession,
        sender_id: UUID,
        receiver_id: UUID,
        message: Optional[str],
        status: InterestStatus
    ) -> Interest:
        try:
            return await self.interest_repo.create(db, {
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "message": message,
                "status": status,
            })
        except IntegrityError:
            # Another process inserted the same ordered pair first
            existing = await self.interest_repo.get_by_pair(db, sender_id, receiver_id)
            raise DuplicateInterest(
                "You have already expressed interest in this profile",
                interest=existing,
            )

    # ------------------------------------------------------------------
    # Respond
    # ------------------------------------------------------------------
    async def respond_to_interest(
        self,
        db: AsyncSession,
        interest_id: UUID,
        actor_id: UUID,
        action: str
    ) -> InterestResult:
        """
        Apply ``action`` to an interest on behalf of ``actor_id``.

        accept / reject / reconsider are the receiver's actions; withdraw is
        the sender's. Any other (status, action) combination fails.

        Raises:
            Unauthorized: If there is no acting user
            InvalidAction: If ``action`` is not one of accept, reject, reconsider, withdraw
            NotFound: If the interest does not exist
            Forbidden: If the actor is the wrong party for the action
            VerificationRequired: If the receiver is not approved (accept, reconsider)
            InvalidTransition: If the action is not legal from the current status
        """
        _require_identity(actor_id)
        try:
            action = InterestAction(action)
        except ValueError:
            raise InvalidAction(f"Invalid action: {action}")

        interest = await self.interest_repo.get(db, interest_id)
        if not interest:
            raise NotFound("Interest not found")

        effects = _PendingEffects()

        async with self.locks.hold(interest.sender_id, interest.receiver_id):
            await self.interest_repo.lock_pair(db, interest.sender_id, interest.receiver_id)
            # Re-read under the lock; a concurrent withdraw may have deleted it
            interest = await self.interest_repo.get(db, interest_id, for_update=True)
            if not interest:
                raise NotFound("Interest not found")

            if action in (InterestAction.ACCEPT, InterestAction.RECONSIDER):
                result = await self._accept(db, interest, actor_id, action, effects)
            elif action == InterestAction.REJECT:
                result = await self._reject(db, interest, actor_id, effects)
            else:
                result = await self._withdraw(db, interest, actor_id, effects)

            if action in POINT_AWARDING_ACTIONS:
                effects.points.append((POINT_AWARDING_ACTIONS[action], actor_id, interest_id))

        logger.info(
            f"User {actor_id} applied {action.value} to interest {interest_id} "
            f"(status={result.interest.status.value}, deleted={result.deleted})"
        )
        self._dispatch(effects)
        return result

    async def _accept(
        self,
        db: AsyncSession,
        interest: Interest,
        actor_id: UUID,
        action: InterestAction,
        effects: _PendingEffects
    ) -> InterestResult:
        if interest.receiver_id != actor_id:
            raise Forbidden("Only the receiver can respond to this interest")

        approval = await self.profile_repo.get_approval_status(db, actor_id)
        if approval != ApprovalStatus.approved:
            raise VerificationRequired(
                "Your profile must be approved before you can accept interests",
                would_be_mutual=True,
            )

        # The original sender's approval is not re-checked here; it was
        # checked when a mutual match could first form.
        if action == InterestAction.RECONSIDER:
            allowed = (InterestStatus.rejected,)
        else:
            allowed = (InterestStatus.pending, InterestStatus.rejected)
        if interest.status not in allowed:
            raise InvalidTransition(
                f"Cannot {action.value} an interest that is {interest.status.value}"
            )

        interest = await self.interest_repo.set_status(db, interest, InterestStatus.accepted)

        reverse = await self.interest_repo.get_by_pair(
            db, interest.receiver_id, interest.sender_id, for_update=True
        )
        if reverse and reverse.status in (InterestStatus.pending, InterestStatus.rejected):
            await self.interest_repo.set_status(db, reverse, InterestStatus.accepted)

        await db.commit()

        sender_profile = await self.profile_repo.get_by_user_id(db, interest.sender_id)

        effects.mutual_matches.append((interest.sender_id, interest.receiver_id))
        payload = {"interest_id": interest.id, "actor_user_id": actor_id}
        effects.notifications.append((NotificationType.INTEREST_ACCEPTED, interest.sender_id, payload))
        effects.emails.append((NotificationType.INTEREST_ACCEPTED, interest.sender_id, payload))

        return InterestResult(
            interest=interest,
            mutual=True,
            contact_info=ContactInfo.from_profile(sender_profile) if sender_profile else None,
            message="It's a mutual match!",
        )

    async def _reject(
        self,
        db: AsyncSession,
        interest: Interest,
        actor_id: UUID,
        effects: _PendingEffects
    ) -> InterestResult:
        if interest.receiver_id != actor_id:
            raise Forbidden("Only the receiver can respond to this interest")

        if interest.status != InterestStatus.pending:
            raise InvalidTransition(
                f"Cannot reject an interest that is {interest.status.value}"
            )

        interest = await self.interest_repo.set_status(db, interest, InterestStatus.rejected)
        await db.commit()

        effects.notifications.append((
            NotificationType.INTEREST_REJECTED,
            interest.sender_id,
            {"interest_id": interest.id, "actor_user_id": actor_id},
        ))
        return InterestResult(interest=interest, message="Interest declined")

    async def _withdraw(
        self,
        db: AsyncSession,
        interest: Interest,
        actor_id: UUID,
        effects: _PendingEffects
    ) -> InterestResult:
        if interest.sender_id != actor_id:
            raise Forbidden("Only the sender can withdraw this interest")

        payload = {"interest_id": interest.id, "actor_user_id": actor_id}

        if interest.status == InterestStatus.accepted:
            await self.declined_repo.upsert(
                db, interest.sender_id, interest.receiver_id,
                source=DeclinedSource.CONNECTION_WITHDRAWN,
                hidden_from_reconsider=False,
            )
            interest = await self.interest_repo.set_status(db, interest, InterestStatus.withdrawn)
            await db.commit()

            effects.notifications.append(
                (NotificationType.CONNECTION_WITHDRAWN, interest.receiver_id, payload)
            )
            return InterestResult(interest=interest, message="Connection withdrawn")

        if interest.status in (InterestStatus.pending, InterestStatus.rejected):
            # The marker must exist before the row goes, so the profile stays
            # out of the sender's feed even though no interest survives.
            await self.declined_repo.upsert(
                db, interest.sender_id, interest.receiver_id,
                source=DeclinedSource.INTEREST_WITHDRAWN,
                hidden_from_reconsider=False,
            )
            await self.interest_repo.delete(db, interest.id)
            await db.commit()

            effects.notifications.append(
                (NotificationType.INTEREST_WITHDRAWN, interest.receiver_id, payload)
            )
            return InterestResult(interest=interest, deleted=True, message="Interest withdrawn")

        raise InvalidTransition(
            f"Cannot withdraw an interest that is {interest.status.value}"
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def list_received(
        self,
        db: AsyncSession,
        user_id: UUID,
        status_filter: Optional[str] = None
    ) -> list[Interest]:
        """
        List interests received by a user, newest first.

        Pending interests from someone the viewer has also sent interest to
        are left out: that pair is resolved through the mutual path, not as a
        separate pending item. Accepted and rejected entries are never
        filtered this way.

        Raises:
            InvalidAction: If ``status_filter`` is not a known status
        """
        _require_identity(user_id)
        status = None
        if status_filter:
            try:
                status = InterestStatus(status_filter)
            except ValueError:
                raise InvalidAction(f"Invalid status filter: {status_filter}")

        interests = await self.interest_repo.list_received(db, user_id, status=status)

        if status is None or status == InterestStatus.pending:
            pending_senders = [
                i.sender_id for i in interests if i.status == InterestStatus.pending
            ]
            reciprocated = await self.interest_repo.get_receiver_ids_sent_by(
                db, user_id, pending_senders
            )
            interests = [
                i for i in interests
                if not (i.status == InterestStatus.pending and i.sender_id in reciprocated)
            ]

        return interests

    async def list_sent(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[Interest]:
        """List interests a user sent that are not yet connections, newest first."""
        _require_identity(user_id)
        return await self.interest_repo.list_sent(
            db, user_id, exclude_status=InterestStatus.accepted
        )

    async def check_mutual(
        self,
        db: AsyncSession,
        viewer_id: UUID,
        target_profile_id: UUID
    ) -> MutualStatus:
        """
        Report the interest state between the viewer and a profile's owner.

        ``mutual`` is true when both directions exist, or when either one is
        already accepted.

        Raises:
            NotFound: If the profile does not exist
        """
        _require_identity(viewer_id)
        target = await self.profile_repo.get(db, target_profile_id)
        if not target:
            raise NotFound("Profile not found")

        sent = await self.interest_repo.get_by_pair(db, viewer_id, target.user_id)
        received = await self.interest_repo.get_by_pair(db, target.user_id, viewer_id)

        mutual = bool(
            (sent and received)
            or (sent and sent.status == InterestStatus.accepted)
            or (received and received.status == InterestStatus.accepted)
        )

        return MutualStatus(
            sent_by_me=sent is not None,
            received_from_them=received is not None,
            mutual=mutual,
            sent_at=sent.created_at if sent else None,
            received_at=received.created_at if received else None,
        )

    async def get_interest(
        self,
        db: AsyncSession,
        interest_id: UUID,
        actor_id: UUID
    ) -> Interest:
        """Get one interest; only its sender or receiver may see it."""
        _require_identity(actor_id)
        interest = await self.interest_repo.get(db, interest_id)
        if not interest:
            raise NotFound("Interest not found")

        if actor_id not in (interest.sender_id, interest.receiver_id):
            raise Forbidden("You are not part of this interest")

        return interest

    async def list_declined(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[DeclinedProfile]:
        _require_identity(user_id)
        return await self.declined_repo.list_for_user(db, user_id)

    async def decline_profile(
        self,
        db: AsyncSession,
        user_id: UUID,
        declined_user_id: UUID
    ) -> DeclinedProfile:
        """
        Hide ``declined_user_id`` from ``user_id``'s feed.

        Declining twice is a no-op: an existing marker is returned unchanged,
        whatever wrote it. Markers are never removed here.

        Raises:
            Unauthorized: If there is no user identity
            InvalidAction: If a user declines themselves
            NotFound: If the declined user has no profile

        Example:
            marker = await service.decline_profile(db, me.id, them.user_id)
        """
        _require_identity(user_id)
        if user_id == declined_user_id:
            raise InvalidAction("You cannot decline your own profile")

        if not await self.profile_repo.get_by_user_id(db, declined_user_id):
            raise NotFound("Profile not found")

        async with self.locks.hold(user_id, declined_user_id):
            await self.interest_repo.lock_pair(db, user_id, declined_user_id)
            existing = await self.declined_repo.get_for_pair(db, user_id, declined_user_id)
            if existing:
                return existing

            marker = await self.declined_repo.upsert(
                db, user_id, declined_user_id,
                source=DeclinedSource.PROFILE_DECLINED,
                hidden_from_reconsider=False,
            )
            await db.commit()

        logger.info(f"User {user_id} declined profile of {declined_user_id}")
        return marker

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------
    def _dispatch(self, effects: _PendingEffects) -> None:
        """Schedule collected side effects; the caller does not wait for them."""
        if effects.is_empty():
            return
        run_in_background(self._run_effects(effects), name="interest-side-effects")

    async def _run_effects(self, effects: _PendingEffects) -> None:
        """Hand collected side effects to the dispatcher; never raises."""
        try:
            for sender_id, receiver_id in effects.interest_stats:
                await self.dispatcher.increment_interest_stats(sender_id, receiver_id)
            for user_a, user_b in effects.mutual_matches:
                await self.dispatcher.increment_mutual_matches(user_a, user_b)
            for kind, target, payload in effects.notifications:
                await self.dispatcher.send_notification(kind, target, payload)
            for kind, target, payload in effects.emails:
                await self.dispatcher.send_email(kind, target, payload)
            for kind, user_id, interest_id in effects.points:
                await self.dispatcher.award_points(kind, user_id, interest_id)
        except Exception as e:
            logger.error(f"Error dispatching interest side effects: {e}", exc_info=True)
