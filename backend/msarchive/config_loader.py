"""
Configuration loader for the MS Archive backend.

Loads policy settings from a YAML file and syncs the bootstrap admin
allowlist to the database.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from sqlalchemy.orm import Session

from msarchive.logging_config import get_logger
from msarchive.models import AdminAllowlistEntry

logger = get_logger(__name__)

CAPTCHA_MODES = ("enforce", "permissive")
SUSPECT_WRITE_MODES = ("atomic", "best_effort")

TURNSTILE_VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"


@dataclass
class AppSettings:
    """Runtime policies. Secrets are read from the environment, not from YAML."""
    captcha_mode: str = "permissive"
    captcha_verify_url: str = TURNSTILE_VERIFY_URL
    captcha_timeout_seconds: float = 10.0
    allow_self_removal: bool = True
    bootstrap_emails: List[str] = field(default_factory=list)
    suspect_write_mode: str = "atomic"
    strict_correction_transitions: bool = False
    corrections_list_limit: int = 100


def get_config_path() -> Path:
    """Get the path to the settings file (MSARCHIVE_CONFIG overrides the default)."""
    override = os.getenv("MSARCHIVE_CONFIG")
    if override:
        return Path(override)
    backend_dir = Path(__file__).parent.parent
    return backend_dir / "config" / "settings.yaml"


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Invalid config: '{name}' must be a mapping")
    return value


def load_settings(config_path: Optional[Path] = None) -> AppSettings:
    """
    Load settings from YAML, falling back to defaults for anything missing.

    Expected structure:

    captcha:
      mode: permissive          # enforce | permissive
      verify_url: https://challenges.cloudflare.com/turnstile/v0/siteverify
      timeout_seconds: 10
    admin:
      allow_self_removal: true
      bootstrap_emails:
        - editor@example.org
    suspects:
      write_mode: atomic        # atomic | best_effort
    corrections:
      strict_transitions: false
      list_limit: 100

    CAPTCHA_MODE in the environment overrides captcha.mode.
    """
    path = config_path or get_config_path()
    config: Dict[str, Any] = {}

    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Settings file not found at {path}, using defaults")

    captcha = _section(config, "captcha")
    admin = _section(config, "admin")
    suspects = _section(config, "suspects")
    corrections = _section(config, "corrections")

    defaults = AppSettings()
    settings = AppSettings(
        captcha_mode=str(os.getenv("CAPTCHA_MODE") or captcha.get("mode", defaults.captcha_mode)).lower(),
        captcha_verify_url=captcha.get("verify_url", defaults.captcha_verify_url),
        captcha_timeout_seconds=float(captcha.get("timeout_seconds", defaults.captcha_timeout_seconds)),
        allow_self_removal=bool(admin.get("allow_self_removal", defaults.allow_self_removal)),
        bootstrap_emails=[str(e).strip().lower() for e in (admin.get("bootstrap_emails") or []) if str(e).strip()],
        suspect_write_mode=str(suspects.get("write_mode", defaults.suspect_write_mode)).lower(),
        strict_correction_transitions=bool(corrections.get("strict_transitions", defaults.strict_correction_transitions)),
        corrections_list_limit=int(corrections.get("list_limit", defaults.corrections_list_limit)),
    )

    if settings.captcha_mode not in CAPTCHA_MODES:
        raise ValueError(f"Invalid captcha mode '{settings.captcha_mode}', expected one of {CAPTCHA_MODES}")
    if settings.suspect_write_mode not in SUSPECT_WRITE_MODES:
        raise ValueError(
            f"Invalid suspects write_mode '{settings.suspect_write_mode}', expected one of {SUSPECT_WRITE_MODES}"
        )

    return settings


def get_settings() -> AppSettings:
    """FastAPI dependency; tests override it to switch policies."""
    return load_settings()


def sync_admins_to_db(db: Session, emails: Optional[List[str]] = None) -> int:
    """
    Ensure every bootstrap email from the config is on the admin allowlist.

    Existing entries are left alone and nothing is ever removed here;
    removal only happens through the admin users endpoint.
    """
    if emails is None:
        emails = load_settings().bootstrap_emails

    synced_count = 0
    for email in emails:
        existing = db.get(AdminAllowlistEntry, email)
        if existing:
            continue
        db.add(AdminAllowlistEntry(email=email, added_by="config"))
        synced_count += 1

    db.commit()
    return synced_count
