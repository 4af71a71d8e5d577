"""Database models for the pAION ledger and governance.


Tables:
- TokenBalance: one row per wallet; spendable and locked pools plus lifetime counters
- TransactionType
- TokenTransaction: append-only journal, one row per balance-affecting event
- ProposalStatus
- Proposal: governance proposal with its ordered voting options
- Vote: one tier-weighted vote per (proposal, voter)
"""

from datetime import timedelta
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .constants import from_units


class TokenBalance(models.Model):
	"""
	Per-wallet pAION position.

	Amounts are stored as integer base units (10^-TOKEN_DECIMALS pAION) and read as
	Decimals through the properties below. balance and locked_amount are disjoint
	pools; neither may go negative (DB-enforced). Rows are created lazily and never deleted.
	"""
	id = models.BigAutoField(primary_key=True)
	user_address = models.CharField(max_length=128, unique=True)
	balance_units = models.BigIntegerField(default=0)
	locked_units = models.BigIntegerField(default=0)
	earned_units = models.BigIntegerField(default=0)
	spent_units = models.BigIntegerField(default=0)
	last_updated = models.DateTimeField(default=timezone.now)

	class Meta:
		db_table = "paion_balances"
		constraints = [
			models.CheckConstraint(condition=Q(balance_units__gte=0), name="paion_balance_non_negative"),
			models.CheckConstraint(condition=Q(locked_units__gte=0), name="paion_locked_non_negative"),
			models.CheckConstraint(condition=Q(earned_units__gte=0), name="paion_earned_non_negative"),
			models.CheckConstraint(condition=Q(spent_units__gte=0), name="paion_spent_non_negative"),
		]

	@property
	def balance(self):
		return from_units(self.balance_units)

	@property
	def locked_amount(self):
		return from_units(self.locked_units)

	@property
	def total_earned(self):
		return from_units(self.earned_units)

	@property
	def total_spent(self):
		return from_units(self.spent_units)

	def __str__(self):
		return f"{self.user_address} (balance={self.balance}, locked={self.locked_amount})"


class TransactionType(models.TextChoices):
	EARNED = "earned", "Earned"
	SPENT = "spent", "Spent"
	LOCKED = "locked", "Locked"
	UNLOCKED = "unlocked", "Unlocked"
	TRANSFER_IN = "transfer_in", "Transfer in"
	TRANSFER_OUT = "transfer_out", "Transfer out"


class TokenTransaction(models.Model):
	"""
	Immutable journal row.

	correlation_id links the transfer_out/transfer_in pair of one transfer.
	metadata is stored and returned as-is, never inspected.
	"""
	id = models.BigAutoField(primary_key=True)
	user_address = models.CharField(max_length=128, db_index=True)
	transaction_type = models.CharField(max_length=16, choices=TransactionType.choices)
	amount_units = models.BigIntegerField()
	description = models.TextField(blank=True, default="")
	source_type = models.CharField(max_length=50, blank=True, default="")
	source_id = models.CharField(max_length=128, null=True, blank=True)
	correlation_id = models.UUIDField(null=True, blank=True, db_index=True)
	unlock_date = models.DateTimeField(null=True, blank=True)
	metadata = models.JSONField(default=dict, blank=True)
	created_at = models.DateTimeField(default=timezone.now)

	class Meta:
		db_table = "paion_transactions"
		ordering = ["-created_at", "-id"]
		indexes = [
			models.Index(fields=["user_address", "created_at"]),
			models.Index(fields=["user_address", "transaction_type"]),
		]
		constraints = [
			models.CheckConstraint(condition=Q(amount_units__gt=0), name="paion_tx_amount_positive"),
		]

	@property
	def amount(self):
		return from_units(self.amount_units)


class ProposalStatus(models.TextChoices):
	PENDING = "pending", "Pending"
	ACTIVE = "active", "Active"
	COMPLETED = "completed", "Completed"
	CANCELLED = "cancelled", "Cancelled"


# Forward-only lifecycle; completed/cancelled are terminal.
PROPOSAL_TRANSITIONS = {
	ProposalStatus.PENDING: {ProposalStatus.ACTIVE, ProposalStatus.CANCELLED},
	ProposalStatus.ACTIVE: {ProposalStatus.COMPLETED, ProposalStatus.CANCELLED},
	ProposalStatus.COMPLETED: set(),
	ProposalStatus.CANCELLED: set(),
}


class Proposal(models.Model):
	"""
	A governance question with an ordered list of unique options (e.g. ["Yes", "No"]).
	"""
	id = models.BigAutoField(primary_key=True)
	creator_address = models.CharField(max_length=128, db_index=True)
	title = models.CharField(max_length=200)
	description = models.TextField()
	category = models.CharField(max_length=50, db_index=True)
	options = models.JSONField(default=list)
	status = models.CharField(max_length=16, choices=ProposalStatus.choices, default=ProposalStatus.PENDING)
	start_date = models.DateTimeField()
	end_date = models.DateTimeField()
	metadata = models.JSONField(default=dict, blank=True)
	created_at = models.DateTimeField(default=timezone.now)
	updated_at = models.DateTimeField(default=timezone.now)

	class Meta:
		db_table = "governance_proposals"
		indexes = [
			models.Index(fields=["status", "end_date"]),
		]
		constraints = [
			models.CheckConstraint(condition=Q(end_date__gt=F("start_date")), name="proposal_end_after_start"),
		]

	def can_transition(self, to_status) -> bool:
		return to_status in PROPOSAL_TRANSITIONS[ProposalStatus(self.status)]

	def is_open(self, now) -> bool:
		"""
		Accepting votes: active and not yet past end_date
		"""
		return self.status == ProposalStatus.ACTIVE and now < self.end_date

	def time_remaining(self, now):
		return max(self.end_date - now, timedelta(0))

	def __str__(self):
		return f"#{self.pk} {self.title} ({self.status})"


class Vote(models.Model):
	"""
	Voting power is snapshotted at vote time; later tier changes never rewrite it.
	"""
	id = models.BigAutoField(primary_key=True)
	proposal = models.ForeignKey(Proposal, on_delete=models.PROTECT, related_name="votes")
	voter_address = models.CharField(max_length=128, db_index=True)
	option = models.CharField(max_length=200)
	voting_power = models.PositiveIntegerField()
	reasoning = models.TextField(blank=True, default="")
	created_at = models.DateTimeField(default=timezone.now)

	class Meta:
		db_table = "governance_votes"
		ordering = ["-created_at", "-id"]
		constraints = [
			models.UniqueConstraint(fields=["proposal", "voter_address"], name="one_vote_per_voter"),
			models.CheckConstraint(condition=Q(voting_power__gt=0), name="vote_power_positive"),
		]
