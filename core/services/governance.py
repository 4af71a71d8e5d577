"""Governance orchestration: proposals, tier-weighted votes, tallies, expiry sweep.

Proposal lifecycle: pending → active → completed | cancelled (terminal).
Votes are taken with the proposal row locked; the (proposal, voter) unique
constraint is the last line against duplicate votes.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..adapters.tier_adapter import TierVotingPowerProvider, VotingPowerProvider
from ..cache import StatsCache
from ..errors import (
	AlreadyVoted, InsufficientVotingPower, InvalidOption, InvalidOptions, InvalidProposal, InvalidQuery,
	InvalidTransition, NotProposalCreator, ProposalInactive, ProposalNotFound, store_errors,
)
from ..models import Proposal, ProposalStatus, Vote
from .params import parse_page, require_address

logger = logging.getLogger(__name__)

STATS_KEY = "governance_stats"
DEFAULT_OPTIONS = ("Yes", "No")
DEFAULT_PAGE_SIZE = 20
SORTABLE_FIELDS = ("created_at", "start_date", "end_date", "title", "category", "status")
MAX_OPTION_LENGTH = 200


@dataclass(frozen=True)
class Tally:
	proposal_id: int
	per_option_counts: dict
	per_option_voting_power: dict
	total_votes: int
	total_voting_power: int

	def as_dict(self) -> dict:
		"""
		{option: {"count": n, "voting_power": p}} in the proposal's option order
		"""
		return {
			option: {"count": count, "voting_power": self.per_option_voting_power[option]}
			for option, count in self.per_option_counts.items()
		}


def _clean_options(options) -> list[str]:
	if options is None:
		return list(DEFAULT_OPTIONS)
	if not isinstance(options, (list, tuple)) or not options:
		raise InvalidOptions()
	for option in options:
		if not isinstance(option, str) or not option.strip():
			raise InvalidOptions("Options must be non-empty strings")
		if len(option) > MAX_OPTION_LENGTH:
			raise InvalidOptions(f"Options must be at most {MAX_OPTION_LENGTH} characters")
	if len(set(options)) != len(options):
		raise InvalidOptions("Options must be unique")
	return list(options)


def _duration_days(value, maximum: int) -> int:
	"""
	Whole days in 1..maximum; integral floats and digit strings are accepted, fractions are not
	"""
	if isinstance(value, str) and value.strip().isdigit():
		value = int(value)
	elif isinstance(value, float) and value.is_integer():
		value = int(value)
	if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= maximum:
		raise InvalidProposal(f"duration_days must be a whole number of days between 1 and {maximum}")
	return value


def _proposal_pk(value) -> int:
	try:
		return int(value)
	except (TypeError, ValueError):
		raise ProposalNotFound()


class GovernanceService:
	"""
	Proposal creation gated on voting power, one vote per wallet, pure tallies.

	The tier → power table lives in the injected VotingPowerProvider; the creation
	threshold and default voting window come from settings.GOVERNANCE unless passed in.
	"""

	def __init__(self, voting_power: VotingPowerProvider | None = None, clock=None, cache: StatsCache | None = None,
				 proposal_threshold: int | None = None, default_duration_days: int | None = None):
		governance = settings.GOVERNANCE
		self.voting_power = voting_power or TierVotingPowerProvider()
		self.clock = clock or timezone.now
		self.cache = cache if cache is not None else StatsCache()
		self.proposal_threshold = governance["PROPOSAL_THRESHOLD"] if proposal_threshold is None else proposal_threshold
		self.default_duration_days = (
			governance["DEFAULT_DURATION_DAYS"] if default_duration_days is None else default_duration_days
		)
		self.max_page_size = governance.get("MAX_PAGE_SIZE", 100)
		self.max_duration_days = governance.get("MAX_DURATION_DAYS", 365)

	def get_user_voting_power(self, address: str) -> int:
		require_address(address)
		with store_errors():
			return int(self.voting_power.get_voting_power(address))

	def get_user_tier(self, address: str) -> str:
		require_address(address)
		with store_errors():
			return self.voting_power.get_tier(address)

	# --- Proposals ---------------------------------------------------------------

	def create_proposal(self, creator_address: str, title: str, description: str, category: str,
						options: list | None = None, duration_days: int | None = None,
						metadata: dict | None = None) -> Proposal:
		"""
		Open a proposal immediately (status active) for duration_days.
		"""
		require_address(creator_address)
		if not all(isinstance(v, str) and v.strip() for v in (title, description, category)):
			raise InvalidProposal()
		if len(title) > 200 or len(category) > 50:
			raise InvalidProposal("Title must be at most 200 characters and category at most 50")
		options = _clean_options(options)
		duration = _duration_days(
			self.default_duration_days if duration_days is None else duration_days, self.max_duration_days,
		)
		if metadata is not None and not isinstance(metadata, dict):
			raise InvalidProposal("metadata must be an object")

		power = self.get_user_voting_power(creator_address)
		if power < self.proposal_threshold:
			logger.warning(f"Proposal rejected for {creator_address}: voting power {power} < {self.proposal_threshold}")
			raise InsufficientVotingPower(
				f"Insufficient voting power to create proposals. Required: {self.proposal_threshold}, current: {power}"
			)

		now = self.clock()
		with store_errors():
			proposal = Proposal.objects.create(
				creator_address=creator_address,
				title=title,
				description=description,
				category=category,
				options=options,
				status=ProposalStatus.ACTIVE,
				start_date=now,
				end_date=now + timedelta(days=duration),
				metadata=metadata or {},
				created_at=now,
				updated_at=now,
			)

		self._changed()
		logger.info(f"Proposal created: {proposal.pk} by {creator_address}")
		return proposal

	def get_proposal(self, proposal_id) -> tuple[Proposal, Tally]:
		proposal = self._get(proposal_id)
		return proposal, self._tally(proposal)

	def get_proposals(self, status: str | None = None, category: str | None = None, creator_address: str | None = None,
					  limit=DEFAULT_PAGE_SIZE, offset=0, sort_by: str = "created_at", sort_order: str = "desc") -> list:
		"""
		Filtered page of proposals, each annotated with total_votes and total_voting_power
		"""
		limit, offset = parse_page(limit, offset, max_limit=self.max_page_size, default_limit=DEFAULT_PAGE_SIZE,
								   clamp=True)
		if status and status not in ProposalStatus.values:
			raise InvalidQuery(f"status must be one of {', '.join(ProposalStatus.values)}")
		if sort_by not in SORTABLE_FIELDS:
			raise InvalidQuery(f"sortBy must be one of {', '.join(SORTABLE_FIELDS)}")
		if sort_order not in ("asc", "desc"):
			raise InvalidQuery("sortOrder must be asc or desc")

		qs = Proposal.objects.annotate(
			total_votes=Count("votes"),
			total_voting_power=Coalesce(Sum("votes__voting_power"), 0),
		)
		if status:
			qs = qs.filter(status=status)
		if category:
			qs = qs.filter(category=category)
		if creator_address:
			qs = qs.filter(creator_address=creator_address)

		order = sort_by if sort_order == "asc" else f"-{sort_by}"
		with store_errors():
			return list(qs.order_by(order, "-id")[offset:offset + limit])

	def cancel_proposal(self, proposal_id, requester_address: str, is_admin: bool = False) -> Proposal:
		"""
		Creator or admin may cancel a pending proposal, or an active one still inside its voting window.
		"""
		require_address(requester_address)
		pk = _proposal_pk(proposal_id)
		now = self.clock()

		with store_errors(), transaction.atomic():
			proposal = Proposal.objects.select_for_update().filter(pk=pk).first()
			if proposal is None:
				raise ProposalNotFound()
			if not is_admin and proposal.creator_address != requester_address:
				raise NotProposalCreator()
			if not proposal.can_transition(ProposalStatus.CANCELLED):
				raise InvalidTransition(f"Proposal is already {proposal.status}")
			if proposal.status == ProposalStatus.ACTIVE and now >= proposal.end_date:
				raise InvalidTransition("Voting period has ended")
			proposal.status = ProposalStatus.CANCELLED
			proposal.updated_at = now
			proposal.save(update_fields=["status", "updated_at"])

		self._changed()
		logger.info(f"Proposal {proposal.pk} cancelled by {requester_address}")
		return proposal

	def close_expired_proposals(self) -> list[Proposal]:
		"""
		Complete every active proposal whose end_date has passed. Running it again with
		no time passing returns an empty list.
		"""
		now = self.clock()
		with store_errors(), transaction.atomic():
			expired = list(
				Proposal.objects.select_for_update()
				.filter(status=ProposalStatus.ACTIVE, end_date__lte=now)
				.order_by("end_date", "id")
			)
			for proposal in expired:
				proposal.status = ProposalStatus.COMPLETED
				proposal.updated_at = now
			if expired:
				Proposal.objects.bulk_update(expired, ["status", "updated_at"])

		if expired:
			self._changed()
		logger.info(f"Closed {len(expired)} expired proposals")
		return expired

	# --- Votes -------------------------------------------------------------------

	def cast_vote(self, voter_address: str, proposal_id, option: str, reasoning: str = "") -> Vote:
		"""
		Record one vote with the voter's current power snapshotted onto it.
		"""
		require_address(voter_address)
		pk = _proposal_pk(proposal_id)
		now = self.clock()

		with store_errors(), transaction.atomic():
			proposal = Proposal.objects.select_for_update().filter(pk=pk).first()
			if proposal is None:
				raise ProposalNotFound()
			if not proposal.is_open(now):
				raise ProposalInactive()
			if option not in proposal.options:
				raise InvalidOption()
			if Vote.objects.filter(proposal=proposal, voter_address=voter_address).exists():
				raise AlreadyVoted()

			power = int(self.voting_power.get_voting_power(voter_address))
			if power < 1:
				raise InsufficientVotingPower("Voting power must be positive to vote")

			try:
				with transaction.atomic():
					vote = Vote.objects.create(
						proposal=proposal,
						voter_address=voter_address,
						option=option,
						voting_power=power,
						reasoning=reasoning or "",
						created_at=now,
					)
			except IntegrityError:
				# Lost a race with a concurrent vote from the same wallet
				raise AlreadyVoted()

		self._changed()
		logger.info(f"Vote cast on proposal {pk} by {voter_address}: {option} (power {power})")
		return vote

	def tally(self, proposal_id) -> Tally:
		return self._tally(self._get(proposal_id))

	def get_user_votes(self, address: str, proposal_id=None, limit=DEFAULT_PAGE_SIZE, offset=0) -> list:
		require_address(address)
		limit, offset = parse_page(limit, offset, max_limit=self.max_page_size, default_limit=DEFAULT_PAGE_SIZE,
								   clamp=True)
		qs = Vote.objects.filter(voter_address=address).select_related("proposal")
		if proposal_id not in (None, ""):
			qs = qs.filter(proposal_id=_proposal_pk(proposal_id))
		with store_errors():
			return list(qs.order_by("-created_at", "-id")[offset:offset + limit])

	def get_governance_stats(self) -> dict:
		return self.cache.get_or_compute(STATS_KEY, self._compute_stats)

	# --- Helpers -----------------------------------------------------------------

	def _get(self, proposal_id) -> Proposal:
		pk = _proposal_pk(proposal_id)
		with store_errors():
			proposal = Proposal.objects.filter(pk=pk).first()
		if proposal is None:
			raise ProposalNotFound()
		return proposal

	@staticmethod
	def _tally(proposal: Proposal) -> Tally:
		counts = {option: 0 for option in proposal.options}
		power = {option: 0 for option in proposal.options}
		with store_errors():
			rows = (
				Vote.objects.filter(proposal=proposal)
				.values("option")
				.annotate(n=Count("id"), p=Sum("voting_power"))
				.order_by()
			)
			for r in rows:
				if r["option"] in counts:
					counts[r["option"]] = r["n"]
					power[r["option"]] = r["p"] or 0
		return Tally(
			proposal_id=proposal.pk,
			per_option_counts=counts,
			per_option_voting_power=power,
			total_votes=sum(counts.values()),
			total_voting_power=sum(power.values()),
		)

	def _compute_stats(self) -> dict:
		now = self.clock()
		with store_errors():
			by_status = dict(Proposal.objects.values_list("status").annotate(n=Count("id")).order_by())
			by_category = dict(Proposal.objects.values_list("category").annotate(n=Count("id")).order_by())
			votes = Vote.objects.aggregate(
				total=Count("id"),
				power=Sum("voting_power"),
				this_month=Count("id", filter=Q(created_at__gt=now - timedelta(days=30))),
			)
		total_proposals = sum(by_status.values())
		average = Decimal(votes["total"]) / total_proposals if total_proposals else Decimal("0")
		return {
			"proposals": {
				"total": total_proposals,
				"active": by_status.get(ProposalStatus.ACTIVE.value, 0),
				"completed": by_status.get(ProposalStatus.COMPLETED.value, 0),
				"cancelled": by_status.get(ProposalStatus.CANCELLED.value, 0),
				"by_category": by_category,
			},
			"votes": {
				"total": votes["total"],
				"total_voting_power": votes["power"] or 0,
				"this_month": votes["this_month"],
			},
			"participation": {
				"average_votes_per_proposal": average.quantize(Decimal("0.01")),
			},
		}

	def _changed(self):
		self.cache.invalidate(STATS_KEY)
