from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.core.cache import caches

from core.cache import NullStatsCache
from core.services import GovernanceService, LedgerService


ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
ADMIN = "0x" + "ad" * 32


class FakeClock:
	"""
	Callable clock that only moves when told to
	"""

	def __init__(self, start=None):
		self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=dt_timezone.utc)

	def __call__(self):
		return self.now

	def advance(self, **kwargs):
		self.now += timedelta(**kwargs)


class FixedVotingPower:
	def __init__(self, default=1, **by_address):
		self.default = default
		self.by_address = dict(by_address)

	def set(self, address, power):
		self.by_address[address] = power

	def get_tier(self, address):
		return "TEST"

	def get_voting_power(self, address):
		return self.by_address.get(address, self.default)


@pytest.fixture(autouse=True)
def clear_stats_cache():
	caches["default"].clear()
	yield
	caches["default"].clear()


@pytest.fixture
def clock():
	return FakeClock()


@pytest.fixture
def power():
	return FixedVotingPower(default=1)


@pytest.fixture
def ledger(clock):
	return LedgerService(clock=clock, cache=NullStatsCache())


@pytest.fixture
def governance(power, clock):
	return GovernanceService(voting_power=power, clock=clock, cache=NullStatsCache(), proposal_threshold=3,
							 default_duration_days=7)


@pytest.fixture
def admin_settings(settings):
	settings.ADMIN_WALLET_ADDRESS = ADMIN
	return settings
