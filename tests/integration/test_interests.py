"""
Integration tests for the interest API endpoints.

Covers:
  POST  /api/v1/interests
  GET   /api/v1/interests?type=received|sent&status=
  GET   /api/v1/interests/declined
  POST  /api/v1/interests/declined
  GET   /api/v1/interests/mutual/{profile_id}
  GET   /api/v1/interests/{interest_id}
  PATCH /api/v1/interests/{interest_id}
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.interest import Interest, InterestStatus
from app.models.profile import ApprovalStatus
from tests.factories import InterestFactory, MemberFactory


async def _seed_interest(db: AsyncSession, sender, receiver, status=InterestStatus.pending, **kwargs) -> Interest:
    interest = await InterestFactory.create_async(
        db, sender_id=sender.user_id, receiver_id=receiver.user_id, status=status, **kwargs
    )
    await db.commit()
    return interest


async def _rows_between(db: AsyncSession, a, b) -> list[Interest]:
    result = await db.execute(
        select(Interest)
        .where(Interest.sender_id.in_([a.user_id, b.user_id]))
        .where(Interest.receiver_id.in_([a.user_id, b.user_id]))
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
class TestAuthentication:
    async def test_missing_token_returns_401(self, async_client: AsyncClient, bob):
        response = await async_client.post("/api/v1/interests", json={"profile_id": str(bob.id)})
        assert response.status_code == 401

    async def test_garbage_token_returns_401(self, async_client: AsyncClient):
        response = await async_client.get(
            "/api/v1/interests", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    async def test_unknown_user_returns_401(self, async_client: AsyncClient):
        from app.core.security import create_access_token

        token = create_access_token(data={"sub": str(uuid.uuid4())})
        response = await async_client.get(
            "/api/v1/interests", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# POST /api/v1/interests
# ---------------------------------------------------------------------------
class TestExpressInterest:
    async def test_creates_pending_interest(self, async_client, headers_for, alice, bob, enqueued):
        response = await async_client.post(
            "/api/v1/interests",
            json={"profile_id": str(bob.id), "message": "Hi Bob"},
            headers=headers_for(alice),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["mutual"] is False
        assert data["contact_info"] is None
        assert data["interest"]["status"] == "pending"
        assert data["interest"]["sender_id"] == str(alice.user_id)
        assert data["interest"]["message"] == "Hi Bob"

        assert await enqueued("increment_interest_stats") == [(str(alice.user_id), str(bob.user_id))]
        notifications = await enqueued("store_notification")
        assert [(kind, target) for kind, target, _ in notifications] == [("new_interest", str(bob.user_id))]
        assert len(await enqueued("send_transactional_email")) == 1

    async def test_second_express_is_duplicate_with_original(self, async_client, headers_for, alice, bob):
        first = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )
        second = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(bob.id), "message": "again"},
            headers=headers_for(alice),
        )

        assert second.status_code == 409
        body = second.json()
        assert body["error"] == "duplicate_interest"
        assert body["interest"]["id"] == first.json()["interest"]["id"]
        assert body["interest"]["status"] == "pending"
        assert body["interest"]["message"] is None

    @pytest.mark.parametrize("reverse_status", [
        InterestStatus.pending,
        InterestStatus.rejected,
        InterestStatus.withdrawn,
        InterestStatus.accepted,
    ])
    async def test_reverse_interest_becomes_mutual_match(
        self, async_client, db_session, headers_for, alice, bob, enqueued, reverse_status
    ):
        await _seed_interest(db_session, bob, alice, status=reverse_status)

        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["mutual"] is True
        assert data["interest"]["status"] == "accepted"
        assert data["contact_info"]["email"] == "bob@example.com"

        rows = await _rows_between(db_session, alice, bob)
        assert len(rows) == 2
        assert {row.status for row in rows} == {InterestStatus.accepted}
        assert await enqueued("increment_mutual_matches") == [(str(alice.user_id), str(bob.user_id))]

    async def test_unapproved_sender_cannot_finalize_mutual(
        self, async_client, db_session, headers_for, alice, carol
    ):
        await _seed_interest(db_session, alice, carol)

        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(alice.id)}, headers=headers_for(carol)
        )

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "verification_required"
        assert body["would_be_mutual"] is True

        rows = await _rows_between(db_session, alice, carol)
        assert [(row.sender_id, row.status) for row in rows] == [(alice.user_id, InterestStatus.pending)]

    async def test_unapproved_sender_may_send_first_interest(self, async_client, headers_for, alice, carol):
        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(alice.id)}, headers=headers_for(carol)
        )
        assert response.status_code == 200
        assert response.json()["interest"]["status"] == "pending"

    async def test_unapproved_receiver_is_not_found(self, async_client, headers_for, alice, carol):
        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(carol.id)}, headers=headers_for(alice)
        )
        assert response.status_code == 404

    async def test_unknown_profile_is_not_found(self, async_client, headers_for, alice):
        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(uuid.uuid4())}, headers=headers_for(alice)
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_self_interest_is_forbidden(self, async_client, headers_for, alice):
        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(alice.id)}, headers=headers_for(alice)
        )
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    async def test_queue_outage_does_not_fail_request(self, async_client, headers_for, alice, bob, fake_arq):
        fake_arq.enqueue_job.side_effect = ConnectionError("redis down")

        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )
        assert response.status_code == 200

    async def test_unreachable_queue_does_not_delay_response(
        self, async_client, monkeypatch, headers_for, alice, bob
    ):
        released = asyncio.Event()

        async def _hanging_pool():
            # Stands in for a black-holed host; bounded so a regression fails
            await asyncio.wait_for(released.wait(), timeout=3.0)
            raise ConnectionError("redis unreachable")

        monkeypatch.setattr("app.core.arq.get_arq_pool", _hanging_pool)

        started = time.monotonic()
        response = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )
        elapsed = time.monotonic() - started
        released.set()

        assert response.status_code == 200
        assert response.json()["interest"]["status"] == "pending"
        assert elapsed < 1.0


# ---------------------------------------------------------------------------
# PATCH /api/v1/interests/{interest_id}
# ---------------------------------------------------------------------------
class TestRespondToInterest:
    async def test_accept_shares_contact_info(self, async_client, db_session, headers_for, alice, bob, enqueued):
        interest = await _seed_interest(db_session, alice, bob)

        response = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "accept"}, headers=headers_for(bob)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["mutual"] is True
        assert data["interest"]["status"] == "accepted"
        assert data["contact_info"]["email"] == "alice@example.com"
        assert data["contact_info"]["phone"] == "+15550100"
        assert await enqueued("award_engagement_points") == [
            ("interest_accepted", str(bob.user_id), str(interest.id))
        ]

    async def test_unapproved_receiver_cannot_accept(self, async_client, db_session, headers_for, alice, carol):
        interest = await _seed_interest(db_session, alice, carol)

        response = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "accept"}, headers=headers_for(carol)
        )

        assert response.status_code == 403
        assert response.json()["error"] == "verification_required"
        check = await async_client.get(f"/api/v1/interests/{interest.id}", headers=headers_for(alice))
        assert check.json()["status"] == "pending"

    async def test_reject_then_reconsider(self, async_client, db_session, headers_for, alice, bob):
        interest = await _seed_interest(db_session, alice, bob)

        rejected = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "reject"}, headers=headers_for(bob)
        )
        assert rejected.status_code == 200
        assert rejected.json()["interest"]["status"] == "rejected"
        assert rejected.json()["contact_info"] is None

        again = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "reject"}, headers=headers_for(bob)
        )
        assert again.status_code == 409
        assert again.json()["error"] == "invalid_transition"

        reconsidered = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "reconsider"}, headers=headers_for(bob)
        )
        assert reconsidered.status_code == 200
        assert reconsidered.json()["interest"]["status"] == "accepted"
        assert reconsidered.json()["mutual"] is True

    async def test_reconsider_pending_is_invalid(self, async_client, db_session, headers_for, alice, bob):
        interest = await _seed_interest(db_session, alice, bob)

        response = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "reconsider"}, headers=headers_for(bob)
        )
        assert response.status_code == 409

    async def test_withdraw_pending_deletes_and_records_decline(
        self, async_client, db_session, headers_for, alice, bob, enqueued
    ):
        interest = await _seed_interest(db_session, alice, bob)

        response = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "withdraw"}, headers=headers_for(alice)
        )

        assert response.status_code == 200
        assert response.json()["deleted"] is True

        missing = await async_client.get(f"/api/v1/interests/{interest.id}", headers=headers_for(alice))
        assert missing.status_code == 404

        declined = await async_client.get("/api/v1/interests/declined", headers=headers_for(alice))
        assert len(declined.json()["declined"]) == 1
        assert declined.json()["declined"][0]["declined_user_id"] == str(bob.user_id)
        assert declined.json()["declined"][0]["source"] == "interest_withdrawn"

        notifications = await enqueued("store_notification")
        assert notifications[-1][0] == "interest_withdrawn"
        assert await enqueued("award_engagement_points") == []

        # Express and withdraw again: still a single marker for the pair
        again = await async_client.post(
            "/api/v1/interests", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )
        assert again.status_code == 200
        second = await async_client.patch(
            f"/api/v1/interests/{again.json()['interest']['id']}",
            json={"action": "withdraw"}, headers=headers_for(alice),
        )
        assert second.json()["deleted"] is True

        declined = await async_client.get("/api/v1/interests/declined", headers=headers_for(alice))
        assert len(declined.json()["declined"]) == 1

    async def test_withdraw_connection_keeps_row(self, async_client, db_session, headers_for, alice, bob):
        interest = await _seed_interest(db_session, alice, bob, status=InterestStatus.accepted)

        response = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "withdraw"}, headers=headers_for(alice)
        )

        assert response.status_code == 200
        assert response.json()["interest"]["status"] == "withdrawn"
        assert response.json()["deleted"] is False

        terminal = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "withdraw"}, headers=headers_for(alice)
        )
        assert terminal.status_code == 409

    async def test_receiver_cannot_withdraw(self, async_client, db_session, headers_for, alice, bob):
        interest = await _seed_interest(db_session, alice, bob)

        response = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "withdraw"}, headers=headers_for(bob)
        )
        assert response.status_code == 403

    async def test_unknown_action(self, async_client, db_session, headers_for, alice, bob):
        interest = await _seed_interest(db_session, alice, bob)

        response = await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "block"}, headers=headers_for(bob)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_action"

    async def test_unknown_interest(self, async_client, headers_for, bob):
        response = await async_client.patch(
            f"/api/v1/interests/{uuid.uuid4()}", json={"action": "accept"}, headers=headers_for(bob)
        )
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# GET /api/v1/interests
# ---------------------------------------------------------------------------
class TestListInterests:
    async def test_received_newest_first(self, async_client, db_session, headers_for, alice, bob):
        dave = await MemberFactory.create_async(db_session, name="Dave Kim")
        now = datetime.now(timezone.utc)
        older = await _seed_interest(db_session, bob, alice, created_at=now - timedelta(hours=2))
        newer = await _seed_interest(db_session, dave, alice, created_at=now - timedelta(hours=1))

        response = await async_client.get("/api/v1/interests?type=received", headers=headers_for(alice))

        assert response.status_code == 200
        ids = [i["id"] for i in response.json()["interests"]]
        assert ids == [str(newer.id), str(older.id)]

    async def test_received_hides_pending_from_reciprocated_sender(
        self, async_client, db_session, headers_for, alice, bob
    ):
        dave = await MemberFactory.create_async(db_session, name="Dave Kim")
        await _seed_interest(db_session, bob, alice)
        await _seed_interest(db_session, alice, bob, status=InterestStatus.rejected)
        from_dave = await _seed_interest(db_session, dave, alice)

        pending = await async_client.get(
            "/api/v1/interests?type=received&status=pending", headers=headers_for(alice)
        )
        assert [i["id"] for i in pending.json()["interests"]] == [str(from_dave.id)]

    async def test_received_status_filter(self, async_client, db_session, headers_for, alice, bob):
        rejected = await _seed_interest(db_session, bob, alice, status=InterestStatus.rejected)

        response = await async_client.get(
            "/api/v1/interests?type=received&status=rejected", headers=headers_for(alice)
        )
        assert [i["id"] for i in response.json()["interests"]] == [str(rejected.id)]

    async def test_sent_excludes_connections(self, async_client, db_session, headers_for, alice, bob):
        dave = await MemberFactory.create_async(db_session, name="Dave Kim")
        pending = await _seed_interest(db_session, alice, bob)
        await _seed_interest(db_session, alice, dave, status=InterestStatus.accepted)

        response = await async_client.get("/api/v1/interests?type=sent", headers=headers_for(alice))
        assert [i["id"] for i in response.json()["interests"]] == [str(pending.id)]

    async def test_invalid_type_and_status(self, async_client, headers_for, alice):
        bad_type = await async_client.get("/api/v1/interests?type=all", headers=headers_for(alice))
        bad_status = await async_client.get(
            "/api/v1/interests?type=received&status=maybe", headers=headers_for(alice)
        )
        assert bad_type.status_code == 400
        assert bad_status.status_code == 400


# ---------------------------------------------------------------------------
# GET /api/v1/interests/{id} and /mutual/{profile_id}
# ---------------------------------------------------------------------------
class TestReadInterest:
    async def test_outsider_cannot_read(self, async_client, db_session, headers_for, alice, bob):
        dave = await MemberFactory.create_async(db_session, name="Dave Kim")
        await db_session.commit()
        interest = await _seed_interest(db_session, alice, bob)

        response = await async_client.get(f"/api/v1/interests/{interest.id}", headers=headers_for(dave))
        assert response.status_code == 403

    async def test_mutual_status(self, async_client, db_session, headers_for, alice, bob):
        await _seed_interest(db_session, bob, alice, status=InterestStatus.accepted)

        response = await async_client.get(f"/api/v1/interests/mutual/{bob.id}", headers=headers_for(alice))

        assert response.status_code == 200
        data = response.json()
        assert data["mutual"] is True
        assert data["sent_by_me"] is False
        assert data["received_from_them"] is True

    async def test_mutual_status_unknown_profile(self, async_client, headers_for, alice):
        response = await async_client.get(
            f"/api/v1/interests/mutual/{uuid.uuid4()}", headers=headers_for(alice)
        )
        assert response.status_code == 404


@pytest.mark.parametrize("approval_status", [ApprovalStatus.pending, ApprovalStatus.rejected])
async def test_unapproved_receiver_profile_stays_hidden(
    async_client, db_session, headers_for, alice, approval_status
):
    hidden = await MemberFactory.create_async(db_session, approval_status=approval_status)
    await db_session.commit()

    response = await async_client.post(
        "/api/v1/interests", json={"profile_id": str(hidden.id)}, headers=headers_for(alice)
    )
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# POST /api/v1/interests/declined
# ---------------------------------------------------------------------------
class TestDeclineProfile:
    async def test_decline_records_marker(self, async_client, headers_for, alice, bob, enqueued):
        response = await async_client.post(
            "/api/v1/interests/declined", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )

        assert response.status_code == 200
        assert response.json()["declined_user_id"] == str(bob.user_id)
        assert response.json()["source"] == "profile_declined"
        assert await enqueued("store_notification") == []

        listed = await async_client.get("/api/v1/interests/declined", headers=headers_for(alice))
        assert [d["declined_user_id"] for d in listed.json()["declined"]] == [str(bob.user_id)]

    async def test_declining_twice_keeps_one_marker(self, async_client, headers_for, alice, bob):
        for _ in range(2):
            response = await async_client.post(
                "/api/v1/interests/declined", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
            )
            assert response.status_code == 200

        listed = await async_client.get("/api/v1/interests/declined", headers=headers_for(alice))
        assert len(listed.json()["declined"]) == 1

    async def test_existing_withdraw_marker_is_kept(self, async_client, db_session, headers_for, alice, bob):
        interest = await _seed_interest(db_session, alice, bob)
        await async_client.patch(
            f"/api/v1/interests/{interest.id}", json={"action": "withdraw"}, headers=headers_for(alice)
        )

        response = await async_client.post(
            "/api/v1/interests/declined", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )

        assert response.status_code == 200
        assert response.json()["source"] == "interest_withdrawn"

    async def test_declined_profile_drops_out_of_feed(
        self, async_client, db_session, headers_for, alice, bob
    ):
        received = await _seed_interest(db_session, bob, alice)

        await async_client.post(
            "/api/v1/interests/declined", json={"profile_id": str(bob.id)}, headers=headers_for(alice)
        )

        still_there = await async_client.get(f"/api/v1/interests/{received.id}", headers=headers_for(alice))
        assert still_there.status_code == 200
        ranked = await async_client.post(
            "/api/v1/matches/rank",
            json={"candidates": [{"profile_id": str(bob.id), "match_score": {"percentage": 90}}]},
            headers=headers_for(alice),
        )
        assert ranked.json()["candidates"] == []

    async def test_self_decline_rejected(self, async_client, headers_for, alice):
        response = await async_client.post(
            "/api/v1/interests/declined", json={"profile_id": str(alice.id)}, headers=headers_for(alice)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_action"

    async def test_unknown_profile(self, async_client, headers_for, alice):
        response = await async_client.post(
            "/api/v1/interests/declined", json={"profile_id": str(uuid.uuid4())}, headers=headers_for(alice)
        )
        assert response.status_code == 404

    async def test_requires_auth(self, async_client, bob):
        response = await async_client.post("/api/v1/interests/declined", json={"profile_id": str(bob.id)})
        assert response.status_code == 401
