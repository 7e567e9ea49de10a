"""
Pytest configuration and fixtures for Cocoa Connect tests.

Everything runs against MemoryRecordStore; no Supabase project is needed.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Set test environment before importing cocoa_connect modules
os.environ["APP_ENV"] = "development"

from cocoa_connect.auth import AccountIdentity
from cocoa_connect.db.store import MemoryRecordStore
from cocoa_connect.storage import MemorySecureStorage
from onboarding.committer import ProfileCommitter
from onboarding.locations import LocationDirectory
from onboarding.session import OnboardingSession


ACCOUNT_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
OTHER_ACCOUNT_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


# Two regions; "East" exists under both, two LGAs share the name "Twin"
UNITS = [
    {"id": "r1", "name": "Central", "level": "region", "parent_id": None},
    {"id": "r2", "name": "Highlands", "level": "region", "parent_id": None},
    {"id": "sr1", "name": "East", "level": "sub_region", "parent_id": "r1"},
    {"id": "sr2", "name": "West", "level": "sub_region", "parent_id": "r1"},
    {"id": "sr3", "name": "East", "level": "sub_region", "parent_id": "r2"},
    {"id": "l1", "name": "Kup", "level": "lga", "parent_id": "sr1"},
    {"id": "l2", "name": "Twin", "level": "lga", "parent_id": "sr2"},
    {"id": "l3", "name": "Twin", "level": "lga", "parent_id": "sr2"},
    {"id": "l4", "name": "Goroka", "level": "lga", "parent_id": "sr3"},
    {"id": "w1", "name": "Ward3", "level": "ward", "parent_id": "l1"},
    {"id": "w2", "name": "Ward4", "level": "ward", "parent_id": "l1"},
    {"id": "w3", "name": "Ward1", "level": "ward", "parent_id": "l4"},
]

# A profile written by an older app build, which stored role labels
LEGACY_PROFILE = {
    "account_id": ACCOUNT_ID,
    "email": "a@x.com",
    "full_name": "Jane",
    "role": "Farmer",
    "region_id": "r1",
    "sub_region_id": None,
    "lga_id": None,
    "ward_id": None,
    "registration_number": None,
    "organization_name": None,
    "created_at": "2024-05-01T08:00:00+00:00",
}


class FakeClock:
    """Deterministic clock; advance() moves it forward."""

    def __init__(self):
        self.now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def store():
    """In-memory backend seeded with the administrative hierarchy."""
    return MemoryRecordStore({"administrative_units": UNITS, "profiles": []})


@pytest.fixture
def directory(store):
    return LocationDirectory(store)


@pytest.fixture
def secure_storage():
    return MemorySecureStorage()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def committer(directory, store, secure_storage, clock):
    return ProfileCommitter(directory, store, secure_storage, clock=clock)


@pytest.fixture
def identity():
    return AccountIdentity(account_id=ACCOUNT_ID, email="a@x.com")


@pytest.fixture
def session(identity, directory, committer):
    return OnboardingSession(identity, directory, committer)
