"""Tests for refresh-token rotation and sign-out"""
import threading
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from galleria.errors import Forbidden, NotFound, Unauthorized
from galleria.models.refresh_token import RefreshToken
from galleria.utils.jwt_utils import RejectReason, SigningKeys, TokenRejected
from galleria.utils.revocation import RevocationStore, hash_token
from galleria.utils.sessions import SessionManager

from conftest import TestingSessionLocal

alice = SimpleNamespace(id=1, username="alice")
users = {1: alice}


def load_user(user_id: int):
    return users.get(user_id)


def test_rotate_issues_new_pair(sessions: SessionManager):
    first = sessions.issue(alice)

    second, user = sessions.rotate(first.refresh_token, load_user)

    assert user is alice
    assert second.jti != first.jti
    assert sessions.verifier.verify(second.access_token).jti == second.jti
    # Rotation leaves the earlier access token valid until it expires
    assert sessions.verifier.verify(first.access_token).jti == first.jti
    assert not sessions.store.refresh_registry.contains(first.refresh_token)
    assert sessions.store.refresh_registry.contains(second.refresh_token)


def test_rotate_is_one_shot(sessions: SessionManager):
    pair = sessions.issue(alice)
    sessions.rotate(pair.refresh_token, load_user)

    with pytest.raises(Forbidden):
        sessions.rotate(pair.refresh_token, load_user)


def test_rotate_concurrent_reuse_has_single_winner(sessions: SessionManager):
    pair = sessions.issue(alice)
    outcomes = []
    barrier = threading.Barrier(6)

    def worker():
        barrier.wait()
        try:
            sessions.rotate(pair.refresh_token, load_user)
            outcomes.append("ok")
        except Forbidden:
            outcomes.append("forbidden")

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("forbidden") == 5


def test_rotate_without_token(sessions: SessionManager):
    with pytest.raises(Unauthorized):
        sessions.rotate(None, load_user)


def test_rotate_unregistered_token(sessions: SessionManager, keys: SigningKeys):
    """A correctly signed refresh token the registry never saw is refused"""
    other = SessionManager.create(keys)
    pair = other.issue(alice)

    with pytest.raises(Forbidden):
        sessions.rotate(pair.refresh_token, load_user)


def test_rotate_expired_token_is_forgotten(keys: SigningKeys):
    sessions = SessionManager.create(keys, refresh_ttl=timedelta(seconds=-5))
    pair = sessions.issue(alice)

    with pytest.raises(Forbidden):
        sessions.rotate(pair.refresh_token, load_user)
    assert not sessions.store.refresh_registry.contains(pair.refresh_token)


def test_rotate_deleted_user(sessions: SessionManager):
    ghost = SimpleNamespace(id=99, username="ghost")
    pair = sessions.issue(ghost)

    with pytest.raises(NotFound):
        sessions.rotate(pair.refresh_token, load_user)


def test_sign_out_revokes_access_token(sessions: SessionManager):
    pair = sessions.issue(alice)

    revoked = sessions.sign_out(pair.refresh_token, pair.access_token)

    assert revoked == pair.jti
    with pytest.raises(TokenRejected) as exc_info:
        sessions.verifier.verify(pair.access_token)
    assert exc_info.value.reason is RejectReason.REVOKED
    with pytest.raises(Forbidden):
        sessions.rotate(pair.refresh_token, load_user)


def test_sign_out_without_tokens_is_noop(sessions: SessionManager):
    assert sessions.sign_out(None, None) is None
    assert len(sessions.store.blacklist) == 0


def test_sign_out_ignores_unusable_access_token(sessions: SessionManager):
    assert sessions.sign_out(None, "garbage") is None
    assert len(sessions.store.blacklist) == 0


def test_sign_out_survives_sweep_failure(keys: SigningKeys):
    class BrokenSweep:
        def __init__(self):
            self.added = []

        def add(self, jti, expires_at=None):
            self.added.append(jti)

        def contains(self, jti):
            return jti in self.added

        def sweep(self):
            raise RuntimeError("storage unavailable")

    store = RevocationStore.in_memory()
    store.blacklist = BrokenSweep()
    sessions = SessionManager.create(keys, store=store)
    pair = sessions.issue(alice)

    assert sessions.sign_out(None, pair.access_token) == pair.jti
    assert store.blacklist.added == [pair.jti]


def test_registry_records_refresh_expiry(keys: SigningKeys, db: Session):
    store = RevocationStore.from_database(TestingSessionLocal)
    sessions = SessionManager.create(keys, store=store, refresh_ttl=timedelta(days=7))
    pair = sessions.issue(alice)

    row = db.query(RefreshToken).one()
    assert row.token_hash == hash_token(pair.refresh_token)
    assert row.expires_at == sessions.verifier.verify_refresh(pair.refresh_token).expires_at


def test_sign_out_prunes_abandoned_refresh_tokens(keys: SigningKeys):
    """Refresh tokens that expired without being used do not pile up"""
    store = RevocationStore.in_memory()
    stale = SessionManager.create(keys, store=store, refresh_ttl=timedelta(seconds=-5))
    for _ in range(3):
        stale.issue(alice)
    sessions = SessionManager.create(keys, store=store)
    pair = sessions.issue(alice)
    kept = sessions.issue(alice)
    assert len(store.refresh_registry) == 5

    sessions.sign_out(pair.refresh_token, pair.access_token)

    assert len(store.refresh_registry) == 1
    assert store.refresh_registry.contains(kept.refresh_token)


def test_sign_out_survives_prune_failure(keys: SigningKeys, monkeypatch):
    sessions = SessionManager.create(keys)
    pair = sessions.issue(alice)

    def broken_prune():
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(sessions.store.refresh_registry, "prune", broken_prune)

    assert sessions.sign_out(pair.refresh_token, pair.access_token) == pair.jti
    assert not sessions.store.refresh_registry.contains(pair.refresh_token)


def test_sign_in_again_after_sign_out(sessions: SessionManager):
    """Two sessions for the same user: revoking one leaves the other intact"""
    p1 = sessions.issue(alice)
    p2 = sessions.issue(alice)

    sessions.sign_out(p1.refresh_token, p1.access_token)

    assert sessions.verifier.verify(p2.access_token).jti == p2.jti
    p3, _ = sessions.rotate(p2.refresh_token, load_user)
    assert sessions.verifier.verify(p3.access_token).jti == p3.jti

    p4 = sessions.issue(alice)
    assert p4.jti not in (p1.jti, p2.jti, p3.jti)
    assert sessions.verifier.verify(p4.access_token).username == "alice"


def test_parallel_sessions_rotate_independently(sessions: SessionManager):
    """Rotating one session's refresh token leaves another session untouched"""
    p1 = sessions.issue(alice)
    p2 = sessions.issue(alice)

    p1_next, _ = sessions.rotate(p1.refresh_token, load_user)

    assert sessions.verifier.verify(p1.access_token).jti == p1.jti
    assert sessions.verifier.verify(p1_next.access_token).jti == p1_next.jti
    assert sessions.verifier.verify(p2.access_token).jti == p2.jti
    p2_next, _ = sessions.rotate(p2.refresh_token, load_user)
    assert p2_next.jti not in (p1.jti, p1_next.jti, p2.jti)
