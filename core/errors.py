"""Typed failures raised by the ledger and governance services.

Each error carries a stable `code` and the HTTP status the API layer renders it with.
Validation errors are raised before any database access; StoreUnavailable is the only
retryable kind.
"""

from contextlib import contextmanager

from django.db import InterfaceError, OperationalError


class ServiceError(Exception):
	code = "SERVICE_ERROR"
	status_code = 400
	retryable = False
	default_message = "Request could not be processed"

	def __init__(self, message=None):
		super().__init__(message or self.default_message)

	@property
	def message(self) -> str:
		return str(self)


# --- Ledger ------------------------------------------------------------------

class InvalidAddress(ServiceError):
	code = "INVALID_ADDRESS"
	default_message = "Address is required and must be a string"


class InvalidAmount(ServiceError):
	code = "INVALID_AMOUNT"
	default_message = "Amount must be greater than 0"


class InsufficientBalance(ServiceError):
	code = "INSUFFICIENT_BALANCE"
	default_message = "Insufficient balance"


class InsufficientLockedBalance(ServiceError):
	code = "INSUFFICIENT_LOCKED_BALANCE"
	default_message = "Insufficient locked balance"


class InvalidRecipient(ServiceError):
	code = "INVALID_RECIPIENT"
	default_message = "Invalid recipient"


class InvalidUnlockDate(ServiceError):
	code = "INVALID_UNLOCK_DATE"
	default_message = "unlock_date must be a valid future date"


class InvalidQuery(ServiceError):
	code = "VALIDATION_ERROR"
	default_message = "Invalid query parameters"


# --- Governance --------------------------------------------------------------

class InsufficientVotingPower(ServiceError):
	code = "INSUFFICIENT_VOTING_POWER"
	status_code = 403
	default_message = "Insufficient voting power"


class InvalidProposal(ServiceError):
	code = "MISSING_REQUIRED_FIELDS"
	default_message = "Title, description, and category are required"


class InvalidOptions(ServiceError):
	code = "INVALID_OPTIONS"
	default_message = "Options must be a non-empty list of unique strings"


class ProposalNotFound(ServiceError):
	code = "PROPOSAL_NOT_FOUND"
	status_code = 404
	default_message = "Proposal not found"


class ProposalInactive(ServiceError):
	code = "PROPOSAL_INACTIVE"
	default_message = "Proposal is not active or has ended"


class InvalidOption(ServiceError):
	code = "INVALID_OPTION"
	default_message = "Invalid voting option"


class AlreadyVoted(ServiceError):
	code = "ALREADY_VOTED"
	status_code = 409
	default_message = "User has already voted on this proposal"


class InvalidTransition(ServiceError):
	code = "INVALID_STATUS_TRANSITION"
	status_code = 409
	default_message = "Proposal can no longer change status"


class NotProposalCreator(ServiceError):
	code = "NOT_PROPOSAL_CREATOR"
	status_code = 403
	default_message = "Only the proposal creator or an admin can do this"


# --- Store -------------------------------------------------------------------

class StoreUnavailable(ServiceError):
	code = "DATABASE_ERROR"
	status_code = 503
	retryable = True
	default_message = "Datastore unavailable, retry the request"


@contextmanager
def store_errors():
	"""
	Surface connection/commit failures as StoreUnavailable.

	Must wrap the atomic block (not sit inside it) so the rollback has already
	happened when the caller sees the error.
	"""
	try:
		yield
	except (OperationalError, InterfaceError) as e:
		raise StoreUnavailable(f"Datastore unavailable: {e}") from e
