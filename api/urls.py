"""Public API surface.

- /payments/paion/*: balance, journal, transfer, lock/unlock, admin add/spend, stats
- /governance/*: proposals, votes, tallies, voting power, expiry sweep
- /health: liveness
"""

from django.urls import path
from .views_ops import (
	add_tokens, cancel_proposal, close_expired, lock_tokens, proposals, spend_tokens, transfer, unlock_tokens, vote,
)
from .views_read import (
	balance, earning_sources, governance_stats, health, proposal_detail, proposal_tally, reconcile, token_stats,
	transactions, user_votes, voting_power,
)


urlpatterns = [
	path("health", health),
	path("payments/paion/balance", balance),
	path("payments/paion/transactions", transactions),
	path("payments/paion/transfer", transfer),
	path("payments/paion/add", add_tokens),
	path("payments/paion/spend", spend_tokens),
	path("payments/paion/lock", lock_tokens),
	path("payments/paion/unlock", unlock_tokens),
	path("payments/paion/stats", token_stats),
	path("payments/paion/earning-sources", earning_sources),
	path("payments/paion/reconcile", reconcile),
	path("governance/proposals", proposals),
	path("governance/proposals/<int:proposal_id>", proposal_detail),
	path("governance/proposals/<int:proposal_id>/vote", vote),
	path("governance/proposals/<int:proposal_id>/tally", proposal_tally),
	path("governance/proposals/<int:proposal_id>/cancel", cancel_proposal),
	path("governance/votes", user_votes),
	path("governance/stats", governance_stats),
	path("governance/voting-power", voting_power),
	path("governance/close-expired", close_expired),
]
