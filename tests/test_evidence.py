"""
Tests for cookie signing and evidence extraction.
"""

import pytest
from pydantic import ValidationError
from starlette.requests import Request

from auth.cookies import sign_session_id, unsign_session_id
from auth.errors import BadRequestError, UnauthorizedError
from auth.evidence import (
    CredentialEvidence,
    HeaderCredentialsExtractor,
    SessionCookieExtractor,
    SessionEvidence,
    build_evidence_extractor,
)
from config.settings import Settings


def _request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestCookieSigning:
    def test_round_trip(self):
        signed = sign_session_id("abc123", "k")
        assert signed.startswith("abc123.")
        assert unsign_session_id(signed, "k") == "abc123"

    def test_wrong_secret(self):
        assert unsign_session_id(sign_session_id("abc123", "k"), "other") is None

    @pytest.mark.parametrize("value", ["", "abc123", ".deadbeef", "abc123.deadbeef"])
    def test_garbage_rejected(self, value):
        assert unsign_session_id(value, "k") is None


class TestExtractors:
    def test_header_credentials(self):
        ev = HeaderCredentialsExtractor().extract(_request({"username": "a", "password": "b"}))
        assert ev == CredentialEvidence("a", "b")

    def test_header_missing_half(self):
        extractor = HeaderCredentialsExtractor()
        assert extractor.extract(_request({"username": "a"})) is None
        assert isinstance(extractor.missing_evidence_error(), BadRequestError)

    def test_session_cookie(self, policy):
        extractor = SessionCookieExtractor(policy)
        cookie = f"{policy.cookie_name}={sign_session_id('sid-1', policy.secret)}"
        assert extractor.extract(_request({"cookie": cookie})) == SessionEvidence("sid-1")
        assert isinstance(extractor.missing_evidence_error(), UnauthorizedError)

    def test_unsigned_cookie_is_absent(self, policy):
        extractor = SessionCookieExtractor(policy)
        assert extractor.extract(_request({"cookie": f"{policy.cookie_name}=sid-1"})) is None
        assert extractor.extract(_request({})) is None

    def test_build_from_settings(self):
        settings = Settings(auth_strategy="header")
        assert isinstance(
            build_evidence_extractor(settings.auth_strategy, settings.session_policy()),
            HeaderCredentialsExtractor,
        )
        with pytest.raises(ValueError):
            build_evidence_extractor("oauth", settings.session_policy())

    def test_policy_is_frozen(self):
        policy = Settings(session_max_age_seconds=60).session_policy()
        assert policy.max_age_seconds == 60
        assert policy.http_only is True
        with pytest.raises(ValidationError):
            policy.max_age_seconds = 5
