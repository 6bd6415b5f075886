# (c) Copyright Datacraft, 2026
"""Fixed-window attempt counters per identity and operation."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from passkey_auth.config import Settings
from passkey_auth.db.orm import utc_now
from passkey_auth.errors import RateLimited
from passkey_auth.store import PasskeyStore

logger = logging.getLogger(__name__)


class Operation(str, Enum):
	REGISTER = "register"
	AUTHENTICATE = "authenticate"
	ANY = "any"


@dataclass(frozen=True)
class RateLimitRule:
	window_seconds: int
	max_attempts: int


def rules_from_settings(settings: Settings) -> dict[Operation, RateLimitRule]:
	return {
		Operation.REGISTER: RateLimitRule(
			settings.rate_limit_register_window, settings.rate_limit_register_max
		),
		Operation.AUTHENTICATE: RateLimitRule(
			settings.rate_limit_authenticate_window, settings.rate_limit_authenticate_max
		),
		Operation.ANY: RateLimitRule(
			settings.rate_limit_global_window, settings.rate_limit_global_max
		),
	}


class RateLimiter:
	"""Counts attempts and rejects those over the window maximum.

	The store increments and returns the count in one statement, so
	concurrent requests cannot both observe a count under the limit.
	"""

	def __init__(
		self,
		store: PasskeyStore,
		rules: dict[Operation, RateLimitRule],
		enabled: bool = True,
		clock: Callable[[], datetime] = utc_now,
	):
		self.store = store
		self.rules = rules
		self.enabled = enabled
		self.clock = clock

	@staticmethod
	def window_start(now: datetime, window_seconds: int) -> datetime:
		epoch = int(now.timestamp())
		return datetime.fromtimestamp(epoch - epoch % window_seconds, tz=timezone.utc)

	def hit(self, operation: Operation, identity: str) -> int:
		"""Record one attempt.

		Returns:
			Attempts counted in the current window, this one included

		Raises:
			RateLimited: if the attempt exceeds the window maximum
		"""
		if not self.enabled:
			return 0

		rule = self.rules[operation]
		window_start = self.window_start(self.clock(), rule.window_seconds)
		key = f"{operation.value}:{identity}"
		count = self.store.increment_rate_counter(key, window_start)

		if count > rule.max_attempts:
			logger.warning(
				f"Rate limit exceeded for {key}: {count}/{rule.max_attempts} "
				f"in {rule.window_seconds}s"
			)
			raise RateLimited()
		return count

	def purge(self) -> int:
		"""Drop counters whose windows have closed."""
		longest = max(rule.window_seconds for rule in self.rules.values())
		return self.store.purge_rate_counters(self.clock() - timedelta(seconds=longest))
