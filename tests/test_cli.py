"""
Tests for the Typer CLI, run against a JSON seed.
"""

import json

import pytest
from typer.testing import CliRunner

from cocoa_connect import config
from cocoa_connect.main import app

from conftest import ACCOUNT_ID, LEGACY_PROFILE, OTHER_ACCOUNT_ID, UNITS

runner = CliRunner()


@pytest.fixture
def seed(tmp_path, monkeypatch):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"administrative_units": UNITS, "profiles": []}), encoding="utf-8")

    monkeypatch.setenv("SECURE_STORE_PATH", str(tmp_path / "secure.json"))
    config.get_settings.cache_clear()
    monkeypatch.setattr(config.settings, "_instance", None)
    yield path
    config.get_settings.cache_clear()


def test_roles():
    result = runner.invoke(app, ["roles"])
    assert result.exit_code == 0
    assert "processing_site_owner" in result.stdout


def test_locations(seed):
    result = runner.invoke(app, ["locations", "--level", "sub_region", "--parent", "r1", "--seed", str(seed)])
    assert result.exit_code == 0
    assert "East" in result.stdout
    assert "West" in result.stdout


def test_locations_bad_parent(seed):
    result = runner.invoke(app, ["locations", "--level", "ward", "--parent", "r1", "--seed", str(seed)])
    assert result.exit_code == 1


def test_onboard_producer(seed, tmp_path):
    result = runner.invoke(app, [
        "onboard",
        "--account-id", ACCOUNT_ID,
        "--email", "a@x.com",
        "--role", "Farmer",
        "--full-name", "Jane",
        "--region", "Central",
        "--sub-region", "East",
        "--lga", "Kup",
        "--ward", "Ward3",
        "--seed", str(seed),
    ])
    assert result.exit_code == 0, result.stdout
    assert "w1" in result.stdout
    assert json.loads((tmp_path / "secure.json").read_text())[f"user_role:{ACCOUNT_ID}"] == "producer"

    shown = runner.invoke(app, ["role", "--account-id", ACCOUNT_ID, "--seed", str(seed)])
    assert shown.exit_code == 0
    assert "producer" in shown.stdout

    other = runner.invoke(app, ["role", "--account-id", OTHER_ACCOUNT_ID, "--seed", str(seed)])
    assert other.exit_code == 1


def test_onboard_missing_fields(seed):
    result = runner.invoke(app, [
        "onboard",
        "--account-id", ACCOUNT_ID,
        "--email", "a@x.com",
        "--role", "organization",
        "--seed", str(seed),
    ])
    assert result.exit_code == 1
    assert "organization_name" in result.stdout


def test_onboard_unknown_role(seed):
    result = runner.invoke(app, [
        "onboard", "--account-id", ACCOUNT_ID, "--email", "a@x.com", "--role", "researcher",
    ])
    assert result.exit_code == 2


def test_role_from_stored_profile(tmp_path, monkeypatch):
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps({"administrative_units": UNITS, "profiles": [LEGACY_PROFILE]}), encoding="utf-8"
    )
    monkeypatch.setenv("SECURE_STORE_PATH", str(tmp_path / "secure.json"))
    config.get_settings.cache_clear()
    monkeypatch.setattr(config.settings, "_instance", None)

    result = runner.invoke(app, ["role", "--account-id", ACCOUNT_ID, "--seed", str(path)])

    config.get_settings.cache_clear()
    assert result.exit_code == 0
    assert "producer" in result.stdout
