# (c) Copyright Datacraft, 2026
"""Background revocation of passkeys unused past the inactivity horizon."""
import logging
from datetime import datetime, timedelta
from typing import Callable, ContextManager

from apscheduler.schedulers.background import BackgroundScheduler

from passkey_auth.db.orm import utc_now
from passkey_auth.models import RevocationReason
from passkey_auth.services.rate_limit import RateLimiter, RateLimitRule, Operation
from passkey_auth.store import PasskeyStore

logger = logging.getLogger(__name__)

STARTUP_JOB_ID = "passkey_cleanup_startup"
INTERVAL_JOB_ID = "passkey_cleanup_interval"


class CleanupScheduler:
	"""Owned background task revoking inactive credentials.

	One pass runs when the scheduler starts and, unless the interval is
	disabled, again every interval. Each stale credential is revoked with
	its own conditional update, so a pass never holds anything a ceremony
	needs and one failing record does not stop the rest.
	"""

	def __init__(
		self,
		store_factory: Callable[[], ContextManager[PasskeyStore]],
		inactive_days: int = 30,
		interval_hours: int = 24,
		disable_interval: bool = False,
		rate_limit_rules: dict[Operation, RateLimitRule] | None = None,
		clock: Callable[[], datetime] = utc_now,
	):
		self.store_factory = store_factory
		self.inactive_days = inactive_days
		self.interval_hours = interval_hours
		self.disable_interval = disable_interval
		self.rate_limit_rules = rate_limit_rules or {}
		self.clock = clock
		self._scheduler: BackgroundScheduler | None = None

	@property
	def enabled(self) -> bool:
		return self.inactive_days > 0

	@property
	def running(self) -> bool:
		return self._scheduler is not None and self._scheduler.running

	def run_once(self) -> int:
		"""Revoke every active credential unused since the cutoff.

		Returns:
			Number of credentials revoked in this pass
		"""
		now = self.clock()
		cutoff = now - timedelta(days=self.inactive_days)
		try:
			with self.store_factory() as store:
				revoked = self._revoke_stale(store, now, cutoff)
				self._purge_rate_counters(store)
		except Exception:
			logger.exception("Passkey cleanup pass failed")
			return 0

		logger.info(f"Cleaned up {revoked} inactive passkeys")
		return revoked

	def _revoke_stale(self, store: PasskeyStore, now: datetime, cutoff: datetime) -> int:
		revoked = 0
		for record_id in store.find_stale_credential_ids(cutoff):
			try:
				if store.revoke_credential(
					record_id, RevocationReason.INACTIVE, now, last_used_before=cutoff
				):
					revoked += 1
			except Exception:
				logger.exception(f"Cleanup failed to revoke passkey {record_id}")
		return revoked

	def _purge_rate_counters(self, store: PasskeyStore) -> None:
		if not self.rate_limit_rules:
			return
		try:
			RateLimiter(store, self.rate_limit_rules, clock=self.clock).purge()
		except Exception:
			logger.exception("Cleanup failed to purge rate limit counters")

	def start(self) -> None:
		"""Schedule the startup pass and, if enabled, the recurring pass."""
		if not self.enabled:
			logger.info("Passkey cleanup disabled")
			return
		if self.running:
			return

		scheduler = BackgroundScheduler(timezone="UTC")
		scheduler.add_job(
			self.run_once,
			id=STARTUP_JOB_ID,
			trigger="date",
			run_date=self.clock(),
			misfire_grace_time=None,
			replace_existing=True,
		)
		if not self.disable_interval:
			scheduler.add_job(
				self.run_once,
				id=INTERVAL_JOB_ID,
				trigger="interval",
				hours=self.interval_hours,
				coalesce=True,
				max_instances=1,
				replace_existing=True,
			)
		scheduler.start()
		self._scheduler = scheduler
		logger.info(
			f"Passkey cleanup scheduled: horizon {self.inactive_days} days, "
			f"interval {'disabled' if self.disable_interval else f'{self.interval_hours}h'}"
		)

	def shutdown(self) -> None:
		if self._scheduler is not None:
			self._scheduler.shutdown(wait=False)
			self._scheduler = None
