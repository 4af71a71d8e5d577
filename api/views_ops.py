"""Operational endpoints that mutate state (transfer/lock/unlock, admin add/spend, proposals, votes)."""

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

from core.constants import SOURCES
from core.errors import InvalidAddress, InvalidRecipient
from core.services import GovernanceService, LedgerService
from .auth import is_admin, is_valid_address, require_admin, require_wallet
from .responses import ok, read_json, require_fields, service_errors
from .serializers import balance_data, proposal_data, vote_data
from .views_read import list_proposals


# --- pAION -------------------------------------------------------------------

@csrf_exempt
@require_POST
@require_wallet
@service_errors
def transfer(request):
	"""
	POST: Move pAION from the caller to to_address (all-or-nothing)
	"""
	body = read_json(request)
	require_fields(body, "to_address", "amount")
	if not is_valid_address(body["to_address"]):
		raise InvalidRecipient("Invalid recipient address format")

	result = LedgerService().transfer(
		request.user_address,
		body["to_address"],
		body["amount"],
		description=body.get("description") or "Transfer",
		metadata=body.get("metadata"),
	)
	return ok({
		"correlation_id": result.correlation_id,
		"from_balance": balance_data(result.from_balance),
		"to_balance": balance_data(result.to_balance),
	}, message="Transfer completed successfully")


@csrf_exempt
@require_POST
@require_admin
@service_errors
def add_tokens(request):
	"""
	POST (admin): Credit user_address with earned pAION
	"""
	body = read_json(request)
	require_fields(body, "user_address", "amount", "description")
	if not is_valid_address(body["user_address"]):
		raise InvalidAddress("Invalid user_address format")

	tb = LedgerService().credit(
		body["user_address"],
		body["amount"],
		body["description"],
		body.get("source_type") or SOURCES["ADMIN"],
		source_id=body.get("source_id"),
		metadata=body.get("metadata"),
	)
	return ok(balance_data(tb), message="Tokens added successfully")


@csrf_exempt
@require_POST
@require_admin
@service_errors
def spend_tokens(request):
	"""
	POST (admin): Debit user_address; rejected when the spendable balance is short
	"""
	body = read_json(request)
	require_fields(body, "user_address", "amount", "description")
	if not is_valid_address(body["user_address"]):
		raise InvalidAddress("Invalid user_address format")

	tb = LedgerService().debit(
		body["user_address"],
		body["amount"],
		body["description"],
		body.get("source_type") or SOURCES["ADMIN"],
		source_id=body.get("source_id"),
		metadata=body.get("metadata"),
	)
	return ok(balance_data(tb), message="Tokens spent successfully")


@csrf_exempt
@require_POST
@require_wallet
@service_errors
def lock_tokens(request):
	"""
	POST: Move pAION into the caller's locked pool; unlock_date must be in the future
	"""
	body = read_json(request)
	require_fields(body, "amount", "description", "unlock_date")
	tb = LedgerService().lock(
		request.user_address,
		body["amount"],
		body["description"],
		body["unlock_date"],
		metadata=body.get("metadata"),
	)
	return ok(balance_data(tb), message="Tokens locked successfully")


@csrf_exempt
@require_POST
@require_wallet
@service_errors
def unlock_tokens(request):
	body = read_json(request)
	require_fields(body, "amount", "description")
	tb = LedgerService().unlock(
		request.user_address,
		body["amount"],
		body["description"],
		metadata=body.get("metadata"),
	)
	return ok(balance_data(tb), message="Tokens unlocked successfully")


# --- Governance --------------------------------------------------------------

@csrf_exempt
@require_http_methods(["GET", "POST"])
def proposals(request):
	"""
	GET: list (public). POST: create (wallet required, voting power gated)
	"""
	if request.method == "GET":
		return list_proposals(request)
	return create_proposal(request)


@require_wallet
@service_errors
def create_proposal(request):
	body = read_json(request)
	require_fields(body, "title", "description", "category")
	proposal = GovernanceService().create_proposal(
		request.user_address,
		body["title"],
		body["description"],
		body["category"],
		options=body.get("options"),
		duration_days=body.get("duration_days"),
		metadata=body.get("metadata"),
	)
	return ok(proposal_data(proposal), status=201)


@csrf_exempt
@require_POST
@require_wallet
@service_errors
def vote(request, proposal_id: int):
	"""
	POST: Cast the caller's single vote on a proposal
	"""
	body = read_json(request)
	require_fields(body, "option")
	v = GovernanceService().cast_vote(
		request.user_address,
		proposal_id,
		body["option"],
		reasoning=body.get("reasoning") or "",
	)
	return ok(vote_data(v), status=201)


@csrf_exempt
@require_POST
@require_wallet
@service_errors
def cancel_proposal(request, proposal_id: int):
	proposal = GovernanceService().cancel_proposal(
		proposal_id,
		request.user_address,
		is_admin=is_admin(request.user_address),
	)
	return ok(proposal_data(proposal))


@csrf_exempt
@require_POST
@require_admin
@service_errors
def close_expired(request):
	"""
	POST (admin): Run the expiry sweep now (normally cron runs close_expired_proposals)
	"""
	closed = GovernanceService().close_expired_proposals()
	return ok({
		"closed_count": len(closed),
		"closed_proposals": [proposal_data(p) for p in closed],
	})
