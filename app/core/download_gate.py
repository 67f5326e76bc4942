"""Per-session download governance.

Every (session, resume) pair moves through a small state machine: a token is
issued, then consumed exactly once by the actual file transfer, which bumps
the pair's completed-download counter. Denials are ordinary results, not
exceptions. Preview pairs (the uploader looking at their own upload) still
need a token but never touch the counter.
"""

from __future__ import annotations

import enum
import hmac
import logging
import secrets
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PREVIEW_TOKEN_PREFIX = "preview_"


class TokenOutcome(str, enum.Enum):
    ISSUED = "issued"
    LIMIT_REACHED = "limit_reached"


class ConsumeOutcome(str, enum.Enum):
    ALLOWED = "allowed"
    INVALID_TOKEN = "invalid_token"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class DownloadGateConfig:
    limit: int = 3
    limit_enabled: bool = True


@dataclass(frozen=True)
class TokenDecision:
    outcome: TokenOutcome
    token: str | None = None
    preview: bool = False
    downloads_remaining: int | None = None

    @property
    def issued(self) -> bool:
        return self.outcome is TokenOutcome.ISSUED


@dataclass(frozen=True)
class ConsumeDecision:
    outcome: ConsumeOutcome
    preview: bool = False
    download_count: int = 0
    downloads_remaining: int | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is ConsumeOutcome.ALLOWED


@dataclass
class DownloadSession:
    session_id: str
    resume_id: str
    token: str | None = None
    download_count: int = 0
    preview: bool = False


class DownloadGate:
    def __init__(self, config: DownloadGateConfig | None = None):
        self.config = config or DownloadGateConfig()
        self._sessions: dict[tuple[str, str], DownloadSession] = {}
        self._lock = threading.Lock()

    def _session(self, session_id: str, resume_id: str) -> DownloadSession:
        key = (session_id, resume_id)
        entry = self._sessions.get(key)
        if entry is None:
            entry = DownloadSession(session_id=session_id, resume_id=resume_id)
            self._sessions[key] = entry
        return entry

    def _remaining(self, entry: DownloadSession) -> int | None:
        if not self.config.limit_enabled or entry.preview:
            return None
        return max(0, self.config.limit - entry.download_count)

    def _at_limit(self, entry: DownloadSession) -> bool:
        return self.config.limit_enabled and entry.download_count >= self.config.limit

    def mark_preview(self, session_id: str, resume_id: str) -> None:
        with self._lock:
            self._session(session_id, resume_id).preview = True

    def is_preview(self, session_id: str, resume_id: str) -> bool:
        with self._lock:
            entry = self._sessions.get((session_id, resume_id))
            return bool(entry and entry.preview)

    def request_token(self, session_id: str, resume_id: str) -> TokenDecision:
        with self._lock:
            entry = self._session(session_id, resume_id)
            if entry.preview:
                entry.token = PREVIEW_TOKEN_PREFIX + secrets.token_urlsafe(18)
                return TokenDecision(outcome=TokenOutcome.ISSUED, token=entry.token, preview=True)
            if self._at_limit(entry):
                decision = TokenDecision(outcome=TokenOutcome.LIMIT_REACHED, downloads_remaining=0)
            else:
                entry.token = secrets.token_urlsafe(18)
                decision = TokenDecision(
                    outcome=TokenOutcome.ISSUED,
                    token=entry.token,
                    downloads_remaining=self._remaining(entry),
                )
        if not decision.issued:
            logger.info("download_limit_reached session=%s resume=%s", session_id, resume_id)
        return decision

    def consume_token(self, session_id: str, resume_id: str, presented_token: str | None) -> ConsumeDecision:
        with self._lock:
            entry = self._sessions.get((session_id, resume_id))
            if (
                entry is None
                or entry.token is None
                or not presented_token
                or not hmac.compare_digest(entry.token, presented_token)
            ):
                return ConsumeDecision(outcome=ConsumeOutcome.INVALID_TOKEN)

            entry.token = None
            if entry.preview:
                return ConsumeDecision(outcome=ConsumeOutcome.ALLOWED, preview=True)
            if self._at_limit(entry):
                return ConsumeDecision(
                    outcome=ConsumeOutcome.LIMIT_REACHED,
                    download_count=entry.download_count,
                    downloads_remaining=0,
                )

            entry.download_count += 1
            decision = ConsumeDecision(
                outcome=ConsumeOutcome.ALLOWED,
                download_count=entry.download_count,
                downloads_remaining=self._remaining(entry),
            )
        logger.info(
            "download_tracked session=%s resume=%s count=%d",
            session_id,
            resume_id,
            decision.download_count,
        )
        return decision

    def status(self, session_id: str, resume_id: str) -> DownloadSession:
        """Return a snapshot of the pair's bookkeeping."""
        with self._lock:
            entry = self._sessions.get((session_id, resume_id))
            if entry is None:
                return DownloadSession(session_id=session_id, resume_id=resume_id)
            return DownloadSession(
                session_id=entry.session_id,
                resume_id=entry.resume_id,
                token=entry.token,
                download_count=entry.download_count,
                preview=entry.preview,
            )

    def forget_resume(self, resume_id: str) -> None:
        with self._lock:
            for key in [key for key in self._sessions if key[1] == resume_id]:
                del self._sessions[key]

