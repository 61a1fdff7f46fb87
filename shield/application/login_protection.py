"""Login / signup outcome reporting across the IP and spam-prevention throttles."""
import logging

from shield.domain.enums import IdentifierType, ThrottledAction
from shield.domain.policy import policies_for

logger = logging.getLogger("shield.auth")


def normalize_email(value: str | None) -> str | None:
    value = (value or "").strip().lower()
    return value or None


class LoginProtectionService:
    """Fans one auth outcome out to every throttle scope.

    A failed login counts against the client IP (both tables) and against the
    e-mail that was tried. Success clears all three.
    """

    def __init__(self, ip_throttle, spam_prevention):
        self._ip = ip_throttle
        self._spam = spam_prevention

    def record_failure(self, action, ip_address: str | None, email: str | None) -> None:
        policies = policies_for(action)
        email = normalize_email(email)
        if ip_address:
            self._ip.record_failed_attempt(
                ip_address, policies.ip.max_attempts, policies.ip.block_duration_minutes
            )
            self._spam.record_attempt(
                ip_address,
                IdentifierType.IP,
                policies.spam_ip.max_attempts,
                policies.spam_ip.block_duration_minutes,
            )
        if email:
            self._spam.record_attempt(
                email,
                IdentifierType.EMAIL,
                policies.spam_email.max_attempts,
                policies.spam_email.block_duration_minutes,
            )
        logger.info("Failed %s recorded (ip=%s, email=%s)", ThrottledAction(action).value, ip_address, email)

    def record_failed_login(self, ip_address: str | None, email: str | None) -> None:
        self.record_failure(ThrottledAction.LOGIN, ip_address, email)

    def record_failed_signup(self, ip_address: str | None, email: str | None) -> None:
        self.record_failure(ThrottledAction.SIGNUP, ip_address, email)

    def reset(self, ip_address: str | None, email: str | None) -> None:
        email = normalize_email(email)
        if ip_address:
            self._ip.reset_attempts(ip_address)
            self._spam.reset_attempts(ip_address, IdentifierType.IP)
        if email:
            self._spam.reset_attempts(email, IdentifierType.EMAIL)
