"""Wallet-address boundary for API views.

The upstream gateway verifies the user's JWT and forwards the wallet in the
X-User-Address header; here we only check presence/format and gate admin views.
"""

import logging
import re
from functools import wraps

from django.conf import settings

from .responses import fail

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]+")
MIN_ADDRESS_LENGTH = 42


def is_valid_address(address) -> bool:
	"""
	0x-prefixed hex, at least 42 characters (EVM and Sui addresses both qualify)
	"""
	return isinstance(address, str) and len(address) >= MIN_ADDRESS_LENGTH and bool(ADDRESS_RE.fullmatch(address))


def is_admin(address: str) -> bool:
	admin = getattr(settings, "ADMIN_WALLET_ADDRESS", "")
	return bool(admin) and bool(address) and address.lower() == admin.lower()


def require_wallet(view):
	"""
	Reject requests without a well-formed X-User-Address; expose it as request.user_address
	"""
	@wraps(view)
	def wrapper(request, *args, **kwargs):
		address = request.headers.get("X-User-Address")
		if not address:
			return fail("User address required in X-User-Address header.", "NO_USER_ADDRESS", 401)
		if not is_valid_address(address):
			return fail("Invalid wallet address format.", "INVALID_ADDRESS", 400)
		request.user_address = address
		return view(request, *args, **kwargs)
	return wrapper


def require_admin(view):
	@require_wallet
	@wraps(view)
	def wrapper(request, *args, **kwargs):
		if not getattr(settings, "ADMIN_WALLET_ADDRESS", ""):
			logger.error("Admin wallet address not configured")
			return fail("Admin configuration error.", "ADMIN_CONFIG_ERROR", 500)
		if not is_admin(request.user_address):
			logger.warning(f"Unauthorized admin access attempt from: {request.user_address}")
			return fail("Admin access required.", "ADMIN_ACCESS_REQUIRED", 403)
		return view(request, *args, **kwargs)
	return wrapper
