"""Adapter over the local NFT tier stub.

In production, tiers come from on-chain NFT ownership (indexed elsewhere). Here we
read the stub's ORM table directly so governance tests stay deterministic.
"""

from typing import Protocol

from django.conf import settings

from tier_stub.models import NftTierRecord


class VotingPowerProvider(Protocol):
	def get_tier(self, address: str) -> str: ...

	def get_voting_power(self, address: str) -> int: ...


class TierVotingPowerProvider:
	"""
	Maps a wallet's NFT tier to voting power through a configured table.
	Wallets without a tier record hold the default tier.
	"""

	def __init__(self, power_by_tier: dict | None = None, default_tier: str | None = None):
		governance = settings.GOVERNANCE
		self.power_by_tier = dict(power_by_tier or governance["VOTING_POWER"])
		self.default_tier = default_tier or governance.get("DEFAULT_TIER", "NOMAD")
		if self.default_tier not in self.power_by_tier:
			raise ValueError(f"Default tier {self.default_tier!r} has no voting power configured")

	def get_tier(self, address: str) -> str:
		record = NftTierRecord.objects.filter(user_address=address).only("tier").first()
		if record is None or record.tier not in self.power_by_tier:
			return self.default_tier
		return record.tier

	def get_voting_power(self, address: str) -> int:
		return int(self.power_by_tier[self.get_tier(address)])
