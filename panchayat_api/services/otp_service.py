"""Email verification codes gating account registration."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from panchayat_api.services import email_service
from panchayat_api.storage import KeyValueStore
from panchayat_api.utils.tokens import generate_otp_code, now_millis

logger = logging.getLogger(__name__)

CODE_TTL_SECONDS = 5 * 60
KEY_PREFIX = "otp_"


@dataclass(frozen=True)
class OtpRecord:
    code: str
    email: str
    issued_at: int
    ttl: int

    @property
    def expires_at(self) -> int:
        return self.issued_at + self.ttl

    def to_json(self) -> str:
        return json.dumps(
            {"code": self.code, "email": self.email, "issuedAt": self.issued_at, "ttl": self.ttl}
        )

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["OtpRecord"]:
        """Parse a stored record, returning None for anything malformed."""
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None

        code = data.get("code")
        email = data.get("email")
        issued_at = data.get("issuedAt")
        ttl = data.get("ttl")
        if not isinstance(code, str) or not isinstance(email, str):
            return None
        for number in (issued_at, ttl):
            if isinstance(number, bool) or not isinstance(number, int):
                return None
        return cls(code=code, email=email, issued_at=issued_at, ttl=ttl)


def otp_key(email: str) -> str:
    return f"{KEY_PREFIX}{email}"


class OtpService:
    """Issue and check single-use codes bound to an email address.

    A code is persisted only after ``send_email`` returns, so a failed send
    never leaves behind a code the user could not have received.
    """

    def __init__(
        self,
        store: KeyValueStore,
        send_email: Callable[[str, str, str], None] = email_service.send_otp_email,
        clock: Callable[[], int] = now_millis,
        code_factory: Callable[[], str] = generate_otp_code,
    ) -> None:
        self.store = store
        self.send_email = send_email
        self.clock = clock
        self.code_factory = code_factory
        self.ttl_ms = CODE_TTL_SECONDS * 1000

    def _load(self, email: str) -> Optional[OtpRecord]:
        return OtpRecord.from_json(self.store.get(otp_key(email)))

    def issue(self, email: str, name: str) -> OtpRecord:
        """Send a fresh code to ``email`` and store it, replacing any earlier one."""
        code = self.code_factory()
        self.send_email(email, name, code)

        record = OtpRecord(code=code, email=email, issued_at=self.clock(), ttl=self.ttl_ms)
        self.store.set(otp_key(email), record.to_json())
        logger.info("Verification code issued for %s", email)
        return record

    def resend(self, email: str, name: str) -> OtpRecord:
        return self.issue(email, name)

    def verify(self, email: str, submitted_code: str) -> bool:
        """Check ``submitted_code``; a match consumes the stored code."""
        key = otp_key(email)
        record = self._load(email)
        if record is None:
            return False

        if self.clock() - record.issued_at >= record.ttl:
            self.store.remove(key)
            logger.info("Verification code for %s expired", email)
            return False

        if record.code == submitted_code and record.email == email:
            self.store.remove(key)
            return True

        return False

    def remaining_seconds(self, email: str) -> int:
        record = self._load(email)
        if record is None:
            return 0
        remaining_ms = record.ttl - (self.clock() - record.issued_at)
        return max(0, math.ceil(remaining_ms / 1000))

    def is_valid(self, email: str) -> bool:
        """Return True while an unexpired code is stored for ``email``."""
        record = self._load(email)
        if record is None:
            return False
        return self.clock() - record.issued_at < record.ttl
