"""Model → JSON-ready dict conversion for API responses."""

from django.utils import timezone


def balance_data(tb) -> dict:
	return {
		"user_address": tb.user_address,
		"balance": tb.balance,
		"locked_amount": tb.locked_amount,
		"total_earned": tb.total_earned,
		"total_spent": tb.total_spent,
		"last_updated": tb.last_updated,
	}


def transaction_data(tx) -> dict:
	return {
		"id": tx.id,
		"user_address": tx.user_address,
		"transaction_type": tx.transaction_type,
		"amount": tx.amount,
		"description": tx.description,
		"source_type": tx.source_type,
		"source_id": tx.source_id,
		"correlation_id": tx.correlation_id,
		"unlock_date": tx.unlock_date,
		"metadata": tx.metadata,
		"created_at": tx.created_at,
	}


def proposal_data(p, now=None, tally=None) -> dict:
	now = now or timezone.now()
	data = {
		"id": p.id,
		"creator_address": p.creator_address,
		"title": p.title,
		"description": p.description,
		"category": p.category,
		"options": p.options,
		"status": p.status,
		"start_date": p.start_date,
		"end_date": p.end_date,
		"created_at": p.created_at,
		"metadata": p.metadata,
		"is_active": p.is_open(now),
		"time_remaining_seconds": int(p.time_remaining(now).total_seconds()),
	}
	if tally is not None:
		data["vote_statistics"] = tally.as_dict()
		data["total_votes"] = tally.total_votes
		data["total_voting_power"] = tally.total_voting_power
	elif hasattr(p, "total_votes"):
		# list queries annotate the aggregates instead of building a full tally
		data["total_votes"] = p.total_votes
		data["total_voting_power"] = p.total_voting_power
	return data


def vote_data(v, with_proposal: bool = False) -> dict:
	data = {
		"id": v.id,
		"proposal_id": v.proposal_id,
		"voter_address": v.voter_address,
		"option": v.option,
		"voting_power": v.voting_power,
		"reasoning": v.reasoning,
		"created_at": v.created_at,
	}
	if with_proposal:
		data["proposal"] = {"id": v.proposal.id, "title": v.proposal.title, "status": v.proposal.status}
	return data


def tally_data(t) -> dict:
	return {
		"proposal_id": t.proposal_id,
		"options": t.as_dict(),
		"total_votes": t.total_votes,
		"total_voting_power": t.total_voting_power,
	}
