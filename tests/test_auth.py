"""Tests for the local credential gate."""

from __future__ import annotations

import json

import pytest

from smartspend.config import BaseConfig
from smartspend.services.auth import CredentialGate


@pytest.fixture
def gate(storage) -> CredentialGate:
    return CredentialGate(storage)


def test_fresh_gate_has_no_account(gate):
    assert gate.has_account is False
    assert gate.is_authenticated is False
    assert gate.user is None


def test_register_hashes_password_and_signs_in(gate, storage):
    gate.register("  alice ", "s3cret")

    assert gate.is_authenticated
    assert gate.user == "alice"
    stored = json.loads(storage.get(BaseConfig.AUTH_KEY))
    assert stored["username"] == "alice"
    assert "s3cret" not in storage.get(BaseConfig.AUTH_KEY)
    assert stored["password_hash"].startswith("$argon2")
    assert storage.get(BaseConfig.SESSION_KEY) == "alice"


@pytest.mark.parametrize("username, password", [("", "pw"), ("   ", "pw"), ("bob", "")])
def test_register_requires_username_and_password(gate, username, password):
    with pytest.raises(ValueError):
        gate.register(username, password)
    assert gate.has_account is False


def test_session_survives_restart(gate, storage):
    gate.register("alice", "s3cret")

    restarted = CredentialGate(storage)

    assert restarted.is_authenticated
    assert restarted.user == "alice"


def test_logout_then_login(gate, storage):
    gate.register("alice", "s3cret")
    gate.logout()

    assert gate.is_authenticated is False
    assert storage.get(BaseConfig.SESSION_KEY) is None
    assert CredentialGate(storage).is_authenticated is False

    assert gate.login("alice", "wrong") is False
    assert gate.login("mallory", "s3cret") is False
    assert gate.login("alice", "s3cret") is True
    assert gate.user == "alice"


def test_login_without_account_fails(gate):
    assert gate.login("alice", "anything") is False


def test_plain_text_record_is_upgraded_on_login(storage):
    storage.set(BaseConfig.AUTH_KEY, json.dumps({"username": "alice", "password": "old"}))
    gate = CredentialGate(storage)

    assert gate.login("alice", "nope") is False
    assert gate.login("alice", "old") is True

    stored = json.loads(storage.get(BaseConfig.AUTH_KEY))
    assert "password" not in stored
    assert "password_hash" in stored


def test_unreadable_credentials_mean_no_account(storage):
    storage.set(BaseConfig.AUTH_KEY, "{broken")
    gate = CredentialGate(storage)
    assert gate.has_account is False
    assert gate.login("alice", "pw") is False


def test_gate_never_touches_ledger(gate, store, storage):
    before = storage.get(BaseConfig.STORAGE_KEY)
    gate.register("alice", "s3cret")
    gate.logout()
    assert storage.get(BaseConfig.STORAGE_KEY) == before
