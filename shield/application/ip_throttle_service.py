"""Per-IP throttle: blocks a client address after repeated failed attempts."""
from shield import config
from shield.application.abuse_throttle import AbuseThrottle
from shield.domain.policy import ThrottlePolicy


class IpThrottleService:
    """Untyped throttle keyed by IP address (``ip_throttles``)."""

    def __init__(self, store, policy: ThrottlePolicy | None = None, clock=None):
        policy = policy or ThrottlePolicy(config.IP_THROTTLE_MAX_ATTEMPTS, config.IP_THROTTLE_BLOCK_MINUTES)
        self._throttle = AbuseThrottle(store, policy, label="IP", clock=clock)

    @property
    def default_policy(self) -> ThrottlePolicy:
        return self._throttle.default_policy

    def is_blocked(self, ip_address: str) -> bool:
        return self._throttle.is_blocked(ip_address)

    def record_failed_attempt(
        self,
        ip_address: str,
        max_attempts: int | None = None,
        block_duration_minutes: int | None = None,
    ) -> None:
        self._throttle.record_failed_attempt(
            ip_address,
            max_attempts=max_attempts,
            block_duration_minutes=block_duration_minutes,
        )

    def reset_attempts(self, ip_address: str) -> None:
        self._throttle.reset_attempts(ip_address)

    def get_attempt_count(self, ip_address: str) -> int:
        return self._throttle.get_attempt_count(ip_address)

    def get_status(self, ip_address: str) -> dict:
        return self._throttle.get_status(ip_address)

    def list_statuses(self, blocked_only: bool = False) -> list:
        return self._throttle.list_statuses(blocked_only)

    def block(self, ip_address: str, duration_minutes: int | None = None):
        return self._throttle.block(ip_address, duration_minutes=duration_minutes)

    def unblock(self, ip_address: str) -> None:
        self._throttle.unblock(ip_address)
