"""pAION ledger orchestration.

Every mutation is a single transaction.atomic() unit:
validate → lock balance row(s) with select_for_update → apply → append journal row(s).
Validation failures never touch the database; nothing partial is ever committed.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..cache import StatsCache
from ..constants import SOURCES, from_units, parse_amount, quantize, to_units
from ..errors import (
	InsufficientBalance, InsufficientLockedBalance, InvalidQuery, InvalidRecipient, InvalidUnlockDate, store_errors,
)
from ..models import TokenBalance, TokenTransaction, TransactionType
from .params import parse_page, require_address

logger = logging.getLogger(__name__)

STATS_KEY = "paion_stats"
HISTORY_DEFAULT_LIMIT = 50
HISTORY_MAX_LIMIT = 1000
LOCK_SOURCE = "lock"


@dataclass(frozen=True)
class TransferResult:
	from_balance: TokenBalance
	to_balance: TokenBalance
	correlation_id: uuid.UUID


@dataclass(frozen=True)
class TransactionPage:
	transactions: list
	total_count: int
	has_more: bool


def _metadata(metadata) -> dict:
	if metadata is None:
		return {}
	if not isinstance(metadata, dict):
		raise InvalidQuery("metadata must be an object")
	return metadata


def _unlock_datetime(value) -> datetime:
	"""
	Accept an aware/naive datetime or an ISO-8601 string; naive values are read as UTC
	"""
	if isinstance(value, str):
		try:
			value = parse_datetime(value.strip().replace("Z", "+00:00"))
		except ValueError:
			raise InvalidUnlockDate()
	if not isinstance(value, datetime):
		raise InvalidUnlockDate()
	if timezone.is_naive(value):
		value = timezone.make_aware(value, dt_timezone.utc)
	return value


class LedgerService:
	"""
	Balance reads, credit/debit, atomic transfer and lock/unlock over TokenBalance rows.

	`clock` supplies now() (one reading per operation); `cache` holds aggregate
	statistics only.
	"""

	def __init__(self, clock=None, cache: StatsCache | None = None):
		self.clock = clock or timezone.now
		self.cache = cache if cache is not None else StatsCache()

	# --- Reads ---------------------------------------------------------------

	def get_balance(self, address: str) -> TokenBalance:
		"""
		Current balance row, or an unsaved zero-valued one for wallets with no activity
		"""
		require_address(address)
		with store_errors():
			tb = TokenBalance.objects.filter(user_address=address).first()
		if tb is None:
			return TokenBalance(user_address=address, last_updated=None)
		return tb

	def get_transaction_history(self, address: str, limit=HISTORY_DEFAULT_LIMIT, offset=0,
								transaction_type: str | None = None, source_type: str | None = None) -> TransactionPage:
		require_address(address)
		limit, offset = parse_page(limit, offset, max_limit=HISTORY_MAX_LIMIT, default_limit=HISTORY_DEFAULT_LIMIT)
		if transaction_type and transaction_type not in TransactionType.values:
			raise InvalidQuery(f"transaction_type must be one of {', '.join(TransactionType.values)}")

		qs = TokenTransaction.objects.filter(user_address=address)
		if transaction_type:
			qs = qs.filter(transaction_type=transaction_type)
		if source_type:
			qs = qs.filter(source_type=source_type)

		with store_errors():
			total = qs.count()
			rows = list(qs.order_by("-created_at", "-id")[offset:offset + limit])
		return TransactionPage(transactions=rows, total_count=total, has_more=(offset + limit) < total)

	def get_statistics(self) -> dict:
		return self.cache.get_or_compute(STATS_KEY, self._compute_statistics)

	def _compute_statistics(self) -> dict:
		with store_errors():
			agg = TokenBalance.objects.aggregate(
				total_supply=Sum("earned_units"),
				circulating_supply=Sum("balance_units"),
				total_spent=Sum("spent_units"),
				total_holders=Count("id", filter=Q(balance_units__gt=0)),
			)
		circulating = from_units(agg["circulating_supply"])
		holders = agg["total_holders"] or 0
		return {
			"total_supply": from_units(agg["total_supply"]),
			"circulating_supply": circulating,
			"total_holders": holders,
			"total_spent": from_units(agg["total_spent"]),
			"average_balance": quantize(circulating / holders) if holders else from_units(0),
		}

	def get_earning_sources(self, address: str) -> dict:
		"""
		Sum of earned amounts per source_type for one wallet
		"""
		require_address(address)
		with store_errors():
			rows = (
				TokenTransaction.objects
				.filter(user_address=address, transaction_type=TransactionType.EARNED)
				.values("source_type")
				.annotate(total=Sum("amount_units"))
				.order_by("source_type")
			)
			return {r["source_type"]: from_units(r["total"]) for r in rows}

	def reconcile(self, address: str) -> dict:
		"""
		Recompute the wallet's position from its journal and compare with the balance row.

		balance = earned - spent - locked + unlocked + transfer_in - transfer_out
		locked_amount = locked - unlocked
		"""
		require_address(address)
		with store_errors():
			sums = {
				r["transaction_type"]: r["total"]
				for r in (
					TokenTransaction.objects
					.filter(user_address=address)
					.values("transaction_type")
					.annotate(total=Sum("amount_units"))
					.order_by()
				)
			}
		s = {t: sums.get(t) or 0 for t in TransactionType.values}
		expected = {
			"balance": from_units(
				s["earned"] - s["spent"] - s["locked"] + s["unlocked"] + s["transfer_in"] - s["transfer_out"]
			),
			"locked_amount": from_units(s["locked"] - s["unlocked"]),
			"total_earned": from_units(s["earned"]),
			"total_spent": from_units(s["spent"]),
		}
		tb = self.get_balance(address)
		actual = {k: getattr(tb, k) for k in expected}
		return {"user_address": address, "expected": expected, "actual": actual, "ok": expected == actual}

	# --- Mutations -------------------------------------------------------------

	def credit(self, address: str, amount, description: str, source_type: str,
			   source_id: str | None = None, metadata: dict | None = None) -> TokenBalance:
		"""
		Add earned tokens; creates the balance row on first credit.
		"""
		require_address(address)
		amount = parse_amount(amount)
		units = to_units(amount)
		metadata = _metadata(metadata)
		now = self.clock()

		with store_errors(), transaction.atomic():
			tb = self._lock_row(address, create=True, now=now)
			tb.balance_units += units
			tb.earned_units += units
			tb.last_updated = now
			tb.save(update_fields=["balance_units", "earned_units", "last_updated"])
			self._entry(address, TransactionType.EARNED, units, description, source_type, now,
						source_id=source_id, metadata=metadata).save()

		self._changed()
		logger.info(f"Credited {amount} pAION to {address} ({source_type})")
		return tb

	def debit(self, address: str, amount, description: str, source_type: str,
			  source_id: str | None = None, metadata: dict | None = None) -> TokenBalance:
		"""
		Spend tokens. The sufficiency check runs against the locked row, so two concurrent
		debits can never both pass against the same balance.
		"""
		require_address(address)
		amount = parse_amount(amount)
		units = to_units(amount)
		metadata = _metadata(metadata)
		now = self.clock()

		with store_errors(), transaction.atomic():
			tb = self._lock_row(address)
			self._ensure_spendable(tb, address, units)
			tb.balance_units -= units
			tb.spent_units += units
			tb.last_updated = now
			tb.save(update_fields=["balance_units", "spent_units", "last_updated"])
			self._entry(address, TransactionType.SPENT, units, description, source_type, now,
						source_id=source_id, metadata=metadata).save()

		self._changed()
		logger.info(f"Debited {amount} pAION from {address} ({source_type})")
		return tb

	def transfer(self, from_address: str, to_address: str, amount, description: str = "Transfer",
				 metadata: dict | None = None) -> TransferResult:
		"""
		Move spendable tokens between wallets as one unit: both journal rows and both
		balance updates commit together or not at all.
		"""
		require_address(from_address)
		if not to_address or not isinstance(to_address, str):
			raise InvalidRecipient("Recipient address is required")
		if to_address == from_address:
			raise InvalidRecipient("Cannot transfer to the sending address")
		amount = parse_amount(amount)
		units = to_units(amount)
		metadata = _metadata(metadata)
		now = self.clock()
		correlation_id = uuid.uuid4()

		with store_errors(), transaction.atomic():
			rows = {}
			# Fixed lock order so opposite-direction transfers cannot deadlock
			for addr in sorted((from_address, to_address)):
				rows[addr] = self._lock_row(addr, create=(addr == to_address), now=now)
			sender, receiver = rows[from_address], rows[to_address]
			self._ensure_spendable(sender, from_address, units)

			sender.balance_units -= units
			sender.last_updated = now
			sender.save(update_fields=["balance_units", "last_updated"])
			receiver.balance_units += units
			receiver.last_updated = now
			receiver.save(update_fields=["balance_units", "last_updated"])

			source = SOURCES["TRANSFER"]
			TokenTransaction.objects.bulk_create([
				self._entry(from_address, TransactionType.TRANSFER_OUT, units, description, source, now,
							source_id=to_address, metadata=metadata, correlation_id=correlation_id),
				self._entry(to_address, TransactionType.TRANSFER_IN, units, description, source, now,
							source_id=from_address, metadata=metadata, correlation_id=correlation_id),
			])

		self._changed()
		logger.info(f"Transferred {amount} pAION from {from_address} to {to_address} ({correlation_id})")
		return TransferResult(from_balance=sender, to_balance=receiver, correlation_id=correlation_id)

	def lock(self, address: str, amount, description: str, unlock_date, metadata: dict | None = None) -> TokenBalance:
		"""
		Move spendable tokens into the locked pool. unlock_date is recorded on the journal
		row only; releasing is an explicit unlock() call.
		"""
		require_address(address)
		amount = parse_amount(amount)
		units = to_units(amount)
		metadata = _metadata(metadata)
		now = self.clock()
		unlock_date = _unlock_datetime(unlock_date)
		if unlock_date <= now:
			raise InvalidUnlockDate()

		with store_errors(), transaction.atomic():
			tb = self._lock_row(address)
			self._ensure_spendable(tb, address, units)
			tb.balance_units -= units
			tb.locked_units += units
			tb.last_updated = now
			tb.save(update_fields=["balance_units", "locked_units", "last_updated"])
			self._entry(address, TransactionType.LOCKED, units, description, LOCK_SOURCE, now,
						metadata=metadata, unlock_date=unlock_date).save()

		self._changed()
		logger.info(f"Locked {amount} pAION for {address} until {unlock_date.isoformat()}")
		return tb

	def unlock(self, address: str, amount, description: str, metadata: dict | None = None) -> TokenBalance:
		require_address(address)
		amount = parse_amount(amount)
		units = to_units(amount)
		metadata = _metadata(metadata)
		now = self.clock()

		with store_errors(), transaction.atomic():
			tb = self._lock_row(address)
			locked = tb.locked_units if tb else 0
			if locked < units:
				logger.warning(f"Unlock rejected for {address}: requested {amount}, locked {from_units(locked)}")
				raise InsufficientLockedBalance(
					f"Insufficient locked balance. Required: {amount}, Locked: {from_units(locked)}"
				)
			tb.locked_units -= units
			tb.balance_units += units
			tb.last_updated = now
			tb.save(update_fields=["balance_units", "locked_units", "last_updated"])
			self._entry(address, TransactionType.UNLOCKED, units, description, LOCK_SOURCE, now,
						metadata=metadata).save()

		self._changed()
		logger.info(f"Unlocked {amount} pAION for {address}")
		return tb

	# --- Helpers -----------------------------------------------------------------

	@staticmethod
	def _lock_row(address: str, *, create: bool = False, now=None) -> TokenBalance | None:
		qs = TokenBalance.objects.select_for_update()
		if create:
			tb, _ = qs.get_or_create(user_address=address, defaults={"last_updated": now})
			return tb
		return qs.filter(user_address=address).first()

	@staticmethod
	def _ensure_spendable(tb: TokenBalance | None, address: str, units: int):
		available = tb.balance_units if tb else 0
		if available < units:
			required, available = from_units(units), from_units(available)
			logger.warning(f"Insufficient pAION for {address}: requested {required}, available {available}")
			raise InsufficientBalance(f"Insufficient balance. Required: {required}, Available: {available}")

	@staticmethod
	def _entry(address, transaction_type, units, description, source_type, now, *, source_id=None,
			   metadata=None, correlation_id=None, unlock_date=None) -> TokenTransaction:
		return TokenTransaction(
			user_address=address,
			transaction_type=transaction_type,
			amount_units=units,
			description=description or "",
			source_type=source_type or "",
			source_id=source_id,
			correlation_id=correlation_id,
			unlock_date=unlock_date,
			metadata=metadata or {},
			created_at=now,
		)

	def _changed(self):
		self.cache.invalidate(STATS_KEY)
