"""Short-TTL cache for aggregate statistics.

Only whole-system aggregates (token statistics, governance statistics) go through
here. Balance reads and sufficiency checks always hit the database.
"""

from django.conf import settings
from django.core.cache import caches


class StatsCache:
	"""
	Thin wrapper over a Django cache alias; constructed and injected into services.
	"""

	def __init__(self, alias: str = "default", ttl: int | None = None, prefix: str = "stats"):
		self.backend = caches[alias]
		self.ttl = ttl if ttl is not None else getattr(settings, "STATS_CACHE_TTL", 600)
		self.prefix = prefix

	def _key(self, name: str) -> str:
		return f"{self.prefix}:{name}"

	def get_or_compute(self, name: str, compute):
		key = self._key(name)
		value = self.backend.get(key)
		if value is None:
			value = compute()
			self.backend.set(key, value, self.ttl)
		return value

	def invalidate(self, *names: str):
		self.backend.delete_many([self._key(n) for n in names])


class NullStatsCache(StatsCache):
	"""
	Always recomputes; used where stale aggregates are not acceptable (tests, admin tools)
	"""

	def __init__(self):
		self.ttl = 0
		self.prefix = "null"

	def get_or_compute(self, name: str, compute):
		return compute()

	def invalidate(self, *names: str):
		pass
