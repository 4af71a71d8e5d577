"""Amount and category helpers shared across the ledger.


- TOKEN_DECIMALS controls pAION granularity (6 decimals).
- parse_amount turns caller input into a positive, quantized Decimal or raises InvalidAmount.
- to_units / from_units convert between pAION Decimals and the integer base units stored in the database.
- SOURCES lists the well-known source_type tags; source_type itself stays free-form.
"""

from decimal import Decimal, InvalidOperation

from django.conf import settings

from .errors import InvalidAmount

TOKEN_DECIMALS = settings.PAION.get("DECIMALS", 6)
TEN_POW = 10 ** TOKEN_DECIMALS
QUANTUM = Decimal(1).scaleb(-TOKEN_DECIMALS)
ZERO = Decimal("0")

SOURCES = {
	"TRADING": "trading",
	"AFFILIATE": "affiliate",
	"NFT_MINT": "nft_mint",
	"REFERRAL": "referral",
	"BONUS": "bonus",
	"ADMIN": "admin",
	"TRANSFER": "transfer",
}


def max_amount() -> Decimal:
	return Decimal(settings.PAION.get("MAX_AMOUNT", "1000000"))


def parse_amount(value) -> Decimal:
	"""
	Accept Decimal, int or numeric str (floats go through str() to avoid binary noise)
	"""
	if value is None or isinstance(value, bool):
		raise InvalidAmount("Amount is required")
	if isinstance(value, float):
		value = str(value)
	try:
		amount = Decimal(value) if not isinstance(value, Decimal) else value
	except (InvalidOperation, TypeError, ValueError):
		raise InvalidAmount("Amount must be a valid number")

	if not amount.is_finite():
		raise InvalidAmount("Amount must be a valid number")
	if amount <= 0:
		raise InvalidAmount("Amount must be greater than 0")
	if amount > max_amount():
		raise InvalidAmount("Amount is too large")
	if amount != amount.quantize(QUANTUM):
		raise InvalidAmount(f"Amount supports at most {TOKEN_DECIMALS} decimal places")
	return amount.quantize(QUANTUM)


def quantize(value) -> Decimal:
	return (Decimal(value or 0)).quantize(QUANTUM)


def to_units(amount: Decimal) -> int:
	"""
	Convert an already-validated pAION amount (at most TOKEN_DECIMALS places) to integer base units
	"""
	return int(Decimal(amount) * TEN_POW)


def from_units(units: int | None) -> Decimal:
	return (Decimal(units or 0) / TEN_POW).quantize(QUANTUM)

