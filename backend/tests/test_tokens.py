"""Tests for token issuance and verification"""
from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from galleria.utils.jwt_utils import (
    RejectReason,
    SigningKeys,
    TokenIssuer,
    TokenRejected,
    TokenVerifier,
)
from galleria.utils.revocation import RevocationStore

alice = SimpleNamespace(id=7, username="alice")


@pytest.fixture
def store() -> RevocationStore:
    return RevocationStore.in_memory()


@pytest.fixture
def issuer(keys: SigningKeys, store: RevocationStore) -> TokenIssuer:
    return TokenIssuer(keys, store)


@pytest.fixture
def verifier(keys: SigningKeys, store: RevocationStore) -> TokenVerifier:
    return TokenVerifier(keys, store)


def test_pair_shares_jti(issuer: TokenIssuer, verifier: TokenVerifier):
    """Both tokens of a pair carry the same freshly generated jti"""
    pair = issuer.issue(alice)

    access = verifier.verify(pair.access_token)
    refresh = verifier.verify_refresh(pair.refresh_token)

    assert access.jti == refresh.jti == pair.jti
    assert access.user_id == 7
    assert access.username == "alice"


def test_each_issue_gets_new_jti(issuer: TokenIssuer):
    assert issuer.issue(alice).jti != issuer.issue(alice).jti


def test_issue_registers_refresh_token(issuer: TokenIssuer, store: RevocationStore):
    pair = issuer.issue(alice)
    assert store.refresh_registry.contains(pair.refresh_token)
    assert not store.refresh_registry.contains(pair.access_token)


def test_expiry_matches_ttl(keys: SigningKeys, store: RevocationStore):
    issuer = TokenIssuer(keys, store, access_ttl=timedelta(minutes=5), refresh_ttl=timedelta(days=2))
    pair = issuer.issue(alice)

    access_claims = jwt.get_unverified_claims(pair.access_token)
    refresh_claims = jwt.get_unverified_claims(pair.refresh_token)

    assert access_claims["exp"] - access_claims["iat"] == 5 * 60
    assert refresh_claims["exp"] - refresh_claims["iat"] == 2 * 24 * 60 * 60


def test_refresh_token_is_not_an_access_token(issuer: TokenIssuer, verifier: TokenVerifier):
    """Separate signing domains: neither token verifies as the other"""
    pair = issuer.issue(alice)

    with pytest.raises(TokenRejected) as exc_info:
        verifier.verify(pair.refresh_token)
    assert exc_info.value.reason is RejectReason.BAD_SIGNATURE

    with pytest.raises(TokenRejected) as exc_info:
        verifier.verify_refresh(pair.access_token)
    assert exc_info.value.reason is RejectReason.BAD_SIGNATURE


def test_garbage_is_malformed(verifier: TokenVerifier):
    for token in ("not-a-jwt", "a.b.c", ""):
        with pytest.raises(TokenRejected) as exc_info:
            verifier.verify(token)
        assert exc_info.value.reason is RejectReason.MALFORMED


def test_missing_claims_is_malformed(keys: SigningKeys, verifier: TokenVerifier):
    token = jwt.encode({"sub": "7", "type": "access", "jti": "x"}, keys.access_secret, algorithm="HS256")

    with pytest.raises(TokenRejected) as exc_info:
        verifier.verify(token)
    assert exc_info.value.reason is RejectReason.MALFORMED


def test_expired_token(keys: SigningKeys, store: RevocationStore, verifier: TokenVerifier):
    issuer = TokenIssuer(keys, store, access_ttl=timedelta(seconds=-30))
    pair = issuer.issue(alice)

    with pytest.raises(TokenRejected) as exc_info:
        verifier.verify(pair.access_token)
    assert exc_info.value.reason is RejectReason.EXPIRED


def test_foreign_signature(store: RevocationStore, verifier: TokenVerifier):
    """A well-formed token signed with someone else's key is a bad signature"""
    foreign = TokenIssuer(SigningKeys("other-access", "other-refresh"), store)
    pair = foreign.issue(alice)

    with pytest.raises(TokenRejected) as exc_info:
        verifier.verify(pair.access_token)
    assert exc_info.value.reason is RejectReason.BAD_SIGNATURE


def test_revoked_token(issuer: TokenIssuer, verifier: TokenVerifier, store: RevocationStore):
    pair = issuer.issue(alice)
    store.blacklist.add(pair.jti)

    with pytest.raises(TokenRejected) as exc_info:
        verifier.verify(pair.access_token)
    assert exc_info.value.reason is RejectReason.REVOKED

    # Signature and expiry are still fine
    assert verifier.decode_access(pair.access_token).jti == pair.jti


def test_verify_does_not_touch_store(issuer: TokenIssuer, verifier: TokenVerifier, store: RevocationStore):
    pair = issuer.issue(alice)
    verifier.verify(pair.access_token)
    verifier.verify_refresh(pair.refresh_token)

    assert len(store.blacklist) == 0
    assert len(store.refresh_registry) == 1


def test_signing_keys_reject_shared_secret():
    with pytest.raises(RuntimeError):
        SigningKeys.load("same-secret", "same-secret")


def test_signing_keys_generate_missing_secrets():
    keys = SigningKeys.load(None, None)
    assert keys.access_secret
    assert keys.refresh_secret
    assert keys.access_secret != keys.refresh_secret
