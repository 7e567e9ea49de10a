"""
Tests for OnboardingSession: the end-to-end submit flow.
"""

import asyncio

import pytest

from cocoa_connect.auth import AccountIdentity
from cocoa_connect.errors import NetworkFailure
from onboarding.committer import ProfileCommitter
from onboarding.errors import InvalidTransition
from onboarding.locations import Level
from onboarding.roles import ProfileField, Role
from onboarding.session import OnboardingSession
from onboarding.state import OnboardingPhase

from conftest import LEGACY_PROFILE, OTHER_ACCOUNT_ID


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


async def _fill_producer(session: OnboardingSession, full_name: str = "Jane"):
    session.choose_role(Role.PRODUCER)
    for level, name in [
        (Level.REGION, "Central"),
        (Level.SUB_REGION, "East"),
        (Level.LGA, "Kup"),
        (Level.WARD, "Ward3"),
    ]:
        await session.select_location(level, name)
    session.set_detail(ProfileField.FULL_NAME, full_name)


class GatedUpsertStore:
    """Blocks profile writes until the test opens the gate."""

    def __init__(self, inner):
        self.inner = inner
        self.upserts = 0
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def select(self, collection, filters=None):
        return await self.inner.select(collection, filters)

    async def upsert(self, collection, record, on_conflict):
        self.upserts += 1
        self.entered.set()
        await self.gate.wait()
        return await self.inner.upsert(collection, record, on_conflict)


class FlakyStore:
    """Fails the first profile write with a network error."""

    def __init__(self, inner):
        self.inner = inner
        self.failures_left = 1

    async def select(self, collection, filters=None):
        return await self.inner.select(collection, filters)

    async def upsert(self, collection, record, on_conflict):
        if self.failures_left:
            self.failures_left -= 1
            raise NetworkFailure("connection reset")
        return await self.inner.upsert(collection, record, on_conflict)


class TestScenarios:

    def test_producer_commits(self, session, store):
        async def scenario():
            await _fill_producer(session)
            return await session.submit()

        result = _run(scenario())

        assert result.status == "committed"
        assert session.phase == OnboardingPhase.COMMITTED
        record = result.record
        assert (record.region_id, record.sub_region_id, record.lga_id, record.ward_id) == (
            "r1", "sr1", "l1", "w1"
        )
        assert record.registration_number is None
        assert len(store.rows("profiles")) == 1

    def test_organization_without_location(self, directory, committer):
        session = OnboardingSession(
            AccountIdentity(account_id=OTHER_ACCOUNT_ID, email="b@y.com"), directory, committer
        )
        session.choose_role(Role.ORGANIZATION)
        session.set_detail(ProfileField.ORGANIZATION_NAME, "CoopX")

        result = _run(session.submit())

        assert result.committed
        assert result.record.region_id is None
        assert result.record.ward_id is None

    def test_missing_registration_number(self, session, store):
        async def scenario():
            await _fill_producer(session)
            session.choose_role(Role.PROCESSING_SITE_OWNER)
            for level, name in [
                (Level.REGION, "Central"),
                (Level.SUB_REGION, "East"),
                (Level.LGA, "Kup"),
                (Level.WARD, "Ward3"),
            ]:
                await session.select_location(level, name)
            session.set_detail(ProfileField.FULL_NAME, "Jane")
            return await session.submit()

        result = _run(scenario())

        assert result.status == "failed"
        assert result.failure.kind == "validation_error"
        assert result.failure.fields == ["registration_number"]
        assert session.phase == OnboardingPhase.FAILED
        assert ("upsert", "profiles") not in store.calls

    def test_failure_keeps_data_and_resubmit_succeeds(self, session, directory, store, clock):
        flaky = FlakyStore(store)
        session.committer = ProfileCommitter(directory, flaky, clock=clock)

        async def scenario():
            await _fill_producer(session)
            first = await session.submit()
            assert session.state.ward == "Ward3"
            assert session.state.full_name == "Jane"
            second = await session.submit()
            return first, second

        first, second = _run(scenario())

        assert first.failure.kind == "network_failure"
        assert second.committed
        assert len(store.rows("profiles")) == 1

    def test_unresolvable_location_reports_field(self, session, store):
        async def scenario():
            await _fill_producer(session)
            # The unit disappears from the backend before submit
            store._collections["administrative_units"] = [
                u for u in store._collections["administrative_units"] if u["id"] != "l1"
            ]
            return await session.submit()

        result = _run(scenario())
        assert result.failure.kind == "location_resolution_failed"
        assert result.failure.fields == ["lga"]
        assert session.state.lga == "Kup"

    def test_second_commit_updates_same_record(self, identity, directory, committer, store, clock):
        first = OnboardingSession(identity, directory, committer)
        second = OnboardingSession(identity, directory, committer)

        async def scenario():
            await _fill_producer(first, "Jane")
            a = await first.submit()
            clock.advance(hours=1)
            await _fill_producer(second, "Janet")
            b = await second.submit()
            return a, b

        a, b = _run(scenario())

        rows = store.rows("profiles")
        assert len(rows) == 1
        assert rows[0]["full_name"] == "Janet"
        assert b.record.created_at == a.record.created_at

    def test_reonboarding_over_legacy_profile(self, session, store):
        _run(store.upsert("profiles", LEGACY_PROFILE, on_conflict="account_id"))
        session.choose_role(Role.ORGANIZATION)
        session.set_detail(ProfileField.ORGANIZATION_NAME, "CoopX")

        result = _run(session.submit())

        assert result.committed
        assert session.phase == OnboardingPhase.COMMITTED
        assert result.record.role == Role.ORGANIZATION
        assert result.record.created_at.isoformat() == LEGACY_PROFILE["created_at"]

    def test_unreadable_stored_profile_is_reported(self, session, store):
        _run(store.upsert("profiles", {**LEGACY_PROFILE, "role": "Astronaut"}, on_conflict="account_id"))
        session.choose_role(Role.ORGANIZATION)
        session.set_detail(ProfileField.ORGANIZATION_NAME, "CoopX")

        result = _run(session.submit())

        assert result.status == "failed"
        assert result.failure.kind == "write_rejected"
        assert session.phase == OnboardingPhase.FAILED

    def test_malformed_email_fails_and_can_be_fixed(self, session):
        session.choose_role(Role.ORGANIZATION)
        session.set_detail(ProfileField.ORGANIZATION_NAME, "CoopX")
        session.set_email("a@x")

        result = _run(session.submit())
        assert result.failure.fields == ["email"]
        assert result.failure.details["invalid_fields"] == ["email"]

        session.set_email("a@x.com")
        assert _run(session.submit()).committed


class TestConcurrency:

    def test_second_submit_while_in_flight_is_rejected(self, session, directory, store, clock):
        gated = GatedUpsertStore(store)
        session.committer = ProfileCommitter(directory, gated, clock=clock)

        async def scenario():
            await _fill_producer(session)
            pending = asyncio.create_task(session.submit())
            await gated.entered.wait()

            assert session.phase == OnboardingPhase.SUBMITTING
            rejected = await session.submit()

            gated.gate.set()
            return rejected, await pending

        rejected, committed = _run(scenario())

        assert rejected.accepted is False
        assert rejected.status == "rejected"
        assert committed.committed
        assert gated.upserts == 1

    def test_submit_after_commit_is_rejected(self, session, store):
        async def scenario():
            await _fill_producer(session)
            await session.submit()
            return await session.submit()

        again = _run(scenario())
        assert again.accepted is False
        assert again.record is not None
        assert len([c for c in store.calls if c == ("upsert", "profiles")]) == 1


class TestEditing:

    def test_role_change_resets_pickers(self, session):
        async def scenario():
            await _fill_producer(session)
            session.choose_role(Role.ORGANIZATION)

        _run(scenario())
        assert session.cascade.selected == {}
        assert session.state.region is None
        assert session.state.full_name is None

    def test_region_change_clears_state_and_pickers(self, session):
        async def scenario():
            await _fill_producer(session)
            await session.select_location(Level.REGION, "Highlands")

        _run(scenario())
        assert session.state.sub_region is None
        assert session.state.ward is None
        assert Level.SUB_REGION not in session.cascade.options
        assert session.phase == OnboardingPhase.LOCATION_SELECTION

    def test_location_before_role_rejected(self, session):
        with pytest.raises(InvalidTransition):
            _run(session.select_location(Level.REGION, "Central"))

    def test_clear_location(self, session):
        async def scenario():
            await _fill_producer(session)
            session.clear_location(Level.LGA)

        _run(scenario())
        assert session.state.sub_region == "East"
        assert session.state.lga is None
        assert Level.LGA not in session.cascade.selected
