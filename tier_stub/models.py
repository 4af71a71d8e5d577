"""In-process NFT tier registry to simulate the external tier source per wallet"""

from django.db import models


class NftTier(models.TextChoices):
	NOMAD = "NOMAD", "Nomad"
	PRO = "PRO", "Pro"
	ROYAL = "ROYAL", "Royal"


class NftTierRecord(models.Model):
	"""
	Tracks the tier a wallet holds as if read from its soulbound NFT
	"""
	id = models.BigAutoField(primary_key=True)
	user_address = models.CharField(max_length=128, unique=True)
	tier = models.CharField(max_length=16, choices=NftTier.choices, default=NftTier.NOMAD)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		db_table = "user_nft_tiers"
