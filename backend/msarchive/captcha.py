"""
CAPTCHA verification for public correction submissions (Cloudflare Turnstile).

Two modes, chosen in settings:
- enforce: an unconfigured secret or an unreachable verifier rejects the request
- permissive: both cases are treated as a pass (fail-open)
A missing token is rejected in both modes.
"""
import os
from typing import Optional

import httpx

from msarchive.config_loader import AppSettings
from msarchive.logging_config import get_logger

logger = get_logger(__name__)


class TurnstileVerifier:
    """Verifies Turnstile tokens against the siteverify endpoint."""

    def __init__(
        self,
        secret: Optional[str],
        mode: str = "permissive",
        verify_url: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret = secret
        self.mode = mode
        self.verify_url = verify_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "TurnstileVerifier":
        return cls(
            secret=os.getenv("TURNSTILE_SECRET_KEY"),
            mode=settings.captcha_mode,
            verify_url=settings.captcha_verify_url,
            timeout=settings.captcha_timeout_seconds,
        )

    @property
    def fail_open(self) -> bool:
        return self.mode == "permissive"

    async def verify(self, token: Optional[str], remote_ip: Optional[str] = None) -> bool:
        if not token:
            return False

        if not self.secret:
            if self.fail_open:
                logger.warning("TURNSTILE_SECRET_KEY not set; accepting submission (permissive mode)")
                return True
            logger.error("TURNSTILE_SECRET_KEY not set; rejecting submission (enforce mode)")
            return False

        form = {"secret": self.secret, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.verify_url, data=form)
                response.raise_for_status()
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            if self.fail_open:
                logger.warning(f"CAPTCHA verifier unavailable ({e}); accepting submission (permissive mode)")
                return True
            logger.error(f"CAPTCHA verifier unavailable ({e}); rejecting submission (enforce mode)")
            return False

        success = bool(result.get("success"))
        if not success:
            logger.info(f"CAPTCHA rejected: {result.get('error-codes')}")
        return success
