"""
Unit tests for the Authorization Guard decision function and identity verification
"""
from datetime import timedelta

import pytest

from knowloop.errors import ForbiddenError, UnauthenticatedError
from knowloop.services.authorization import (
    Capability,
    Role,
    check_self,
    decide,
    ensure_owner,
)
from knowloop.services.identity import Identity, JWTIdentityVerifier
from tests.conftest import TEST_SECRET, mint_token


class TestDecide:
    """Pure allow/deny decisions"""

    def test_self_allows_matching_email(self):
        identity = Identity(email="ann@example.com")
        assert decide(identity, Capability.self_only(), target_email="ann@example.com")

    def test_self_match_is_case_insensitive(self):
        identity = Identity(email="Ann@Example.com")
        assert decide(identity, Capability.self_only(), target_email=" ann@example.COM ")

    def test_self_denies_other_email(self):
        identity = Identity(email="ann@example.com")
        assert not decide(identity, Capability.self_only(), target_email="bob@example.com")

    def test_self_denies_missing_target(self):
        identity = Identity(email="ann@example.com")
        assert not decide(identity, Capability.self_only(), target_email=None)

    @pytest.mark.parametrize("role", list(Role))
    def test_role_requires_exact_role(self, role):
        identity = Identity(email="ann@example.com")
        for required in Role:
            allowed = decide(identity, Capability.role_of(required), role=role)
            assert allowed == (role is required)

    def test_role_denies_unknown_caller(self):
        identity = Identity(email="ghost@example.com")
        assert not decide(identity, Capability.role_of(Role.ADMIN), role=None)

    def test_capability_names(self):
        assert str(Capability.self_only()) == "self"
        assert str(Capability.role_of(Role.TUTOR)) == "role:tutor"


class TestRoleParse:
    def test_known_roles(self):
        assert Role.parse("admin") is Role.ADMIN
        assert Role.parse("student") is Role.STUDENT

    def test_unknown_role(self):
        assert Role.parse("superuser") is None
        assert Role.parse(None) is None


class TestOwnership:
    def test_owner_passes(self):
        ensure_owner(Identity(email="tutor@example.com"), "tutor@example.com")

    def test_non_owner_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            ensure_owner(Identity(email="other@example.com"), "tutor@example.com", resource="material")

    def test_missing_owner_fails_closed(self):
        with pytest.raises(ForbiddenError):
            ensure_owner(Identity(email="other@example.com"), None)

    def test_check_self_raises_forbidden(self):
        with pytest.raises(ForbiddenError):
            check_self(Identity(email="ann@example.com"), "bob@example.com")


class TestJWTIdentityVerifier:
    def test_valid_token_yields_email(self):
        verifier = JWTIdentityVerifier(TEST_SECRET)
        identity = verifier.verify(mint_token("Student@Example.com"))
        assert identity.email == "student@example.com"
        assert identity.claims["email"] == "Student@Example.com"

    def test_wrong_signature_is_unauthenticated(self):
        verifier = JWTIdentityVerifier(TEST_SECRET)
        token = mint_token("a@example.com", secret="another-secret-0123456789abcdefgh")
        with pytest.raises(UnauthenticatedError) as exc_info:
            verifier.verify(token)
        assert exc_info.value.code == "AUTH_002"

    def test_expired_token_is_unauthenticated(self):
        verifier = JWTIdentityVerifier(TEST_SECRET)
        token = mint_token("a@example.com", expires_in=timedelta(seconds=-60))
        with pytest.raises(UnauthenticatedError):
            verifier.verify(token)

    def test_empty_token_is_unauthenticated(self):
        with pytest.raises(UnauthenticatedError) as exc_info:
            JWTIdentityVerifier(TEST_SECRET).verify("")
        assert exc_info.value.code == "AUTH_001"

    def test_token_without_email_is_unauthenticated(self):
        import jwt

        token = jwt.encode({"sub": "123"}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(UnauthenticatedError):
            JWTIdentityVerifier(TEST_SECRET).verify(token)

    def test_unconfigured_key_rejects_everything(self):
        with pytest.raises(UnauthenticatedError):
            JWTIdentityVerifier("").verify(mint_token("a@example.com"))
