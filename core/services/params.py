from ..errors import InvalidAddress, InvalidQuery

# OFFSET stays within a 32-bit integer
MAX_OFFSET = 2 ** 31 - 1


def parse_page(limit, offset, *, max_limit: int, default_limit: int, clamp: bool = False) -> tuple[int, int]:
	"""
	Coerce limit/offset (ints or query-string values) and bound-check them.
	With clamp=True an oversized limit is capped at max_limit instead of rejected.
	"""
	try:
		limit = default_limit if limit in (None, "") else int(limit)
		offset = 0 if offset in (None, "") else int(offset)
	except (TypeError, ValueError):
		raise InvalidQuery("limit and offset must be integers")
	if clamp:
		limit = min(limit, max_limit)
	if limit < 1 or limit > max_limit:
		raise InvalidQuery(f"Limit must be between 1 and {max_limit}")
	if offset < 0 or offset > MAX_OFFSET:
		raise InvalidQuery(f"Offset must be between 0 and {MAX_OFFSET}")
	return limit, offset


def require_address(address: str):
	if not address or not isinstance(address, str):
		raise InvalidAddress()
