"""Read-only endpoints: balances, journal, statistics, proposals, tallies, votes."""

from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from core.services import GovernanceService, LedgerService
from .auth import require_wallet
from .responses import ok, service_errors
from .serializers import balance_data, proposal_data, tally_data, transaction_data, vote_data


def health(request):
	return JsonResponse({"ok": True})


# --- pAION -------------------------------------------------------------------

@require_GET
@require_wallet
@service_errors
def balance(request):
	"""
	GET: Caller's pAION balance (zeros for a wallet with no activity)
	"""
	tb = LedgerService().get_balance(request.user_address)
	return ok(balance_data(tb))


@require_GET
@require_wallet
@service_errors
def transactions(request):
	"""
	GET: Caller's journal, newest first. Query: transaction_type, source_type, limit, offset
	"""
	q = request.GET
	page = LedgerService().get_transaction_history(
		request.user_address,
		limit=q.get("limit"),
		offset=q.get("offset"),
		transaction_type=q.get("transaction_type") or None,
		source_type=q.get("source_type") or None,
	)
	return ok({
		"transactions": [transaction_data(t) for t in page.transactions],
		"total_count": page.total_count,
		"has_more": page.has_more,
	})


@require_GET
@service_errors
def token_stats(request):
	"""
	GET: Supply, holders and average balance across all wallets
	"""
	return ok(LedgerService().get_statistics())


@require_GET
@require_wallet
@service_errors
def earning_sources(request):
	return ok(LedgerService().get_earning_sources(request.user_address))


@require_GET
@require_wallet
@service_errors
def reconcile(request):
	"""
	GET: Journal-derived position vs stored balance; ok should always be true
	"""
	return ok(LedgerService().reconcile(request.user_address))


# --- Governance --------------------------------------------------------------

@service_errors
def list_proposals(request):
	"""
	GET: Proposals filtered by status/category/creator_address, paged and sorted
	"""
	q = request.GET
	proposals = GovernanceService().get_proposals(
		status=q.get("status") or None,
		category=q.get("category") or None,
		creator_address=q.get("creator_address") or None,
		limit=q.get("limit"),
		offset=q.get("offset"),
		sort_by=q.get("sortBy", "created_at"),
		sort_order=q.get("sortOrder", "desc"),
	)
	now = timezone.now()
	return ok([proposal_data(p, now=now) for p in proposals], pagination={"count": len(proposals)})


@require_GET
@service_errors
def proposal_detail(request, proposal_id: int):
	proposal, tally = GovernanceService().get_proposal(proposal_id)
	return ok(proposal_data(proposal, tally=tally))


@require_GET
@service_errors
def proposal_tally(request, proposal_id: int):
	return ok(tally_data(GovernanceService().tally(proposal_id)))


@require_GET
@require_wallet
@service_errors
def user_votes(request):
	"""
	GET: Caller's voting history. Query: proposal_id, limit, offset
	"""
	q = request.GET
	votes = GovernanceService().get_user_votes(
		request.user_address,
		proposal_id=q.get("proposal_id"),
		limit=q.get("limit"),
		offset=q.get("offset"),
	)
	return ok([vote_data(v, with_proposal=True) for v in votes])


@require_GET
@service_errors
def governance_stats(request):
	return ok(GovernanceService().get_governance_stats())


@require_GET
@require_wallet
@service_errors
def voting_power(request):
	service = GovernanceService()
	power = service.get_user_voting_power(request.user_address)
	tier = service.get_user_tier(request.user_address)
	return ok({"user_address": request.user_address, "voting_power": power, "tier": tier})
