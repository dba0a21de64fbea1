"""
Runtime configuration for the referral intake service.

Recipients, the referrer block, SMTP credentials and the webhook URL are
read once from the environment and passed explicitly to the service and the
transports. Values can come from `.env.local` / `.env` via python-dotenv.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

PACKAGE_DIR = Path(__file__).resolve().parent
REPO_ROOT = PACKAGE_DIR.parent.parent

REFERRAL_TEMPLATES: Tuple[str, ...] = ("ccp-referral-fillable.pdf",)
CONSENT_TEMPLATES: Tuple[str, ...] = (
    "Consent-for-Referral-and-Release.pdf",
    "Consent for Referral and Release.pdf",
)
CCU_LOOKUP_FILE = "ccu_lookup.json"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class ReferrerProfile:
    """The agency's own header and "person making the referral" block."""

    agency_name: str = "Safe Life Home Health Care"
    staff_person: str = "Intake Team"
    name: str = "Intake Coordinator"
    phone: str = ""
    phone_type: str = "Cell"
    email: str = ""
    relationship: str = "Home Care Provider Agency"

    @classmethod
    def from_env(cls) -> "ReferrerProfile":
        defaults = cls()
        return cls(
            agency_name=os.getenv("AGENCY_NAME", defaults.agency_name),
            staff_person=os.getenv("AGENCY_STAFF_PERSON", defaults.staff_person),
            name=os.getenv("REFERRER_NAME", defaults.name),
            phone=os.getenv("REFERRER_PHONE", defaults.phone),
            phone_type=os.getenv("REFERRER_PHONE_TYPE", defaults.phone_type),
            email=os.getenv("REFERRER_EMAIL", defaults.email),
            relationship=os.getenv("REFERRER_RELATIONSHIP", defaults.relationship),
        )


@dataclass(frozen=True)
class SmtpSettings:
    host: Optional[str] = None
    port: int = 465
    secure: bool = True
    user: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SmtpSettings":
        return cls(
            host=os.getenv("SMTP_HOST") or None,
            port=int(os.getenv("SMTP_PORT", "465")),
            secure=_env_bool("SMTP_SECURE", True),
            user=os.getenv("SMTP_USER") or None,
            password=os.getenv("SMTP_PASS") or None,
            sender=os.getenv("SMTP_FROM") or None,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    @property
    def from_address(self) -> str:
        return self.sender or f"Safe Life CCP <{self.user}>"


@dataclass(frozen=True)
class IntakeSettings:
    assets_dir: Optional[Path] = None
    recipients: Tuple[str, ...] = ()
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    referrer: ReferrerProfile = field(default_factory=ReferrerProfile)
    lead_webhook_url: Optional[str] = None
    email_retry_delay: float = 1.0
    lookup_cache_ttl: int = 300
    agency_rep_title: str = "Intake Team"

    @classmethod
    def from_env(cls) -> "IntakeSettings":
        assets = os.getenv("REFERRAL_ASSETS_DIR")
        return cls(
            assets_dir=Path(assets) if assets else None,
            recipients=_env_list("REFERRAL_RECIPIENTS"),
            smtp=SmtpSettings.from_env(),
            referrer=ReferrerProfile.from_env(),
            lead_webhook_url=os.getenv("LEAD_WEBHOOK_URL") or None,
            email_retry_delay=float(os.getenv("EMAIL_RETRY_DELAY", "1.0")),
            lookup_cache_ttl=int(os.getenv("CCU_LOOKUP_TTL", "300")),
            agency_rep_title=os.getenv("AGENCY_REP_TITLE", "Intake Team"),
        )

    def asset_dirs(self) -> Tuple[Path, ...]:
        """Candidate directories for templates and the lookup table, in order."""
        dirs = []
        if self.assets_dir:
            dirs.append(Path(self.assets_dir))
        dirs.extend([Path.cwd() / "assets", REPO_ROOT / "assets", PACKAGE_DIR / "assets"])
        seen = set()
        ordered = []
        for d in dirs:
            key = str(d)
            if key not in seen:
                seen.add(key)
                ordered.append(d)
        return tuple(ordered)
