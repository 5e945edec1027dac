"""
Evidence extraction — pull the per-request proof of identity.

One extractor is chosen at startup from ``Settings.auth_strategy``:

  • ``header``  → ``HeaderCredentialsExtractor`` (``username`` / ``password`` headers)
  • ``session`` → ``SessionCookieExtractor`` (signed session cookie)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Request

from auth.cookies import unsign_session_id
from auth.errors import NO_CREDENTIALS, AuthError, BadRequestError, UnauthorizedError
from config.settings import SessionPolicy


@dataclass(frozen=True)
class CredentialEvidence:
    username: str
    password: str


@dataclass(frozen=True)
class SessionEvidence:
    session_id: str


Evidence = Union[CredentialEvidence, SessionEvidence]


class EvidenceExtractor(ABC):
    name: str = ""

    @abstractmethod
    def extract(self, request: Request) -> Optional[Evidence]:
        """Return the evidence on *request*, or ``None`` if there is none."""
        ...

    @abstractmethod
    def missing_evidence_error(self) -> AuthError:
        ...


class HeaderCredentialsExtractor(EvidenceExtractor):
    """Raw credentials sent on every request; re-verified each time."""

    name = "header"

    def extract(self, request: Request) -> Optional[Evidence]:
        username = request.headers.get("username")
        password = request.headers.get("password")
        if not username or not password:
            return None
        return CredentialEvidence(username=username, password=password)

    def missing_evidence_error(self) -> AuthError:
        return BadRequestError(NO_CREDENTIALS)


class SessionCookieExtractor(EvidenceExtractor):
    """Session token from the signed cookie; tampered cookies count as absent."""

    name = "session"

    def __init__(self, policy: SessionPolicy) -> None:
        self.policy = policy

    def extract(self, request: Request) -> Optional[Evidence]:
        raw = request.cookies.get(self.policy.cookie_name)
        if not raw:
            return None
        session_id = unsign_session_id(raw, self.policy.secret)
        if session_id is None:
            return None
        return SessionEvidence(session_id=session_id)

    def missing_evidence_error(self) -> AuthError:
        return UnauthorizedError()


def build_evidence_extractor(strategy: str, policy: SessionPolicy) -> EvidenceExtractor:
    if strategy == "header":
        return HeaderCredentialsExtractor()
    if strategy == "session":
        return SessionCookieExtractor(policy)
    raise ValueError(f"Unknown auth strategy: {strategy!r}")
