import json
from unittest import mock
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import OperationalError
from django.db.models.query import QuerySet
from django.utils import timezone

from core.models import Proposal, TokenBalance
from tier_stub.models import NftTierRecord
from .conftest import ADMIN, ALICE, BOB

pytestmark = pytest.mark.django_db


def as_wallet(address):
	return {"X-User-Address": address}


def post(client, url, body, address=None):
	headers = as_wallet(address) if address else {}
	return client.post(url, data=json.dumps(body), content_type="application/json", headers=headers)


def fund(client, address, amount):
	return post(client, "/api/payments/paion/add", {
		"user_address": address, "amount": amount, "description": "Signup bonus", "source_type": "bonus",
	}, ADMIN)


@pytest.fixture
def pro_wallet():
	NftTierRecord.objects.create(user_address=ALICE, tier="PRO")
	return ALICE


def create_proposal(client, creator=ALICE, **overrides):
	body = {"title": "List new pair", "description": "Add AION/USDC", "category": "markets", **overrides}
	return post(client, "/api/governance/proposals", body, creator)


# --- Envelope & auth -----------------------------------------------------------

def test_health(client):
	assert client.get("/api/health").json() == {"ok": True}


def test_wallet_header_is_required(client):
	r = client.get("/api/payments/paion/balance")
	assert r.status_code == 401
	assert r.json() == {"success": False, "error": "User address required in X-User-Address header.",
						"code": "NO_USER_ADDRESS"}


@pytest.mark.parametrize("address", ["0x123", "abc" * 20, "0x" + "zz" * 20])
def test_wallet_header_format(client, address):
	r = client.get("/api/payments/paion/balance", headers=as_wallet(address))
	assert r.status_code == 400
	assert r.json()["code"] == "INVALID_ADDRESS"


def test_method_not_allowed(client):
	assert client.get("/api/payments/paion/transfer", headers=as_wallet(ALICE)).status_code == 405
	assert client.post("/api/payments/paion/balance", headers=as_wallet(ALICE)).status_code == 405


# --- pAION -----------------------------------------------------------------------

def test_balance_for_new_wallet(client):
	r = client.get("/api/payments/paion/balance", headers=as_wallet(ALICE))
	assert r.status_code == 200
	body = r.json()
	assert body["success"] is True
	assert Decimal(body["data"]["balance"]) == 0
	assert Decimal(body["data"]["locked_amount"]) == 0
	assert body["data"]["last_updated"] is None


def test_admin_add_and_spend(client, admin_settings):
	r = fund(client, ALICE, "100")
	assert r.status_code == 200
	assert Decimal(r.json()["data"]["balance"]) == Decimal("100")

	r = post(client, "/api/payments/paion/spend", {
		"user_address": ALICE, "amount": 40, "description": "Premium signal pack",
	}, ADMIN)
	assert r.status_code == 200
	data = r.json()["data"]
	assert Decimal(data["balance"]) == Decimal("60")
	assert Decimal(data["total_spent"]) == Decimal("40")

	r = post(client, "/api/payments/paion/spend", {
		"user_address": ALICE, "amount": 61, "description": "Too much",
	}, ADMIN)
	assert r.status_code == 400
	assert r.json()["code"] == "INSUFFICIENT_BALANCE"


def test_admin_endpoints_reject_other_wallets(client, admin_settings):
	r = fund(client, ALICE, 10)
	assert r.status_code == 200

	r = post(client, "/api/payments/paion/add", {
		"user_address": ALICE, "amount": 10, "description": "Self-mint",
	}, ALICE)
	assert r.status_code == 403
	assert r.json()["code"] == "ADMIN_ACCESS_REQUIRED"


def test_admin_match_ignores_case(client, admin_settings):
	assert fund(client, ALICE, 1).status_code == 200
	r = post(client, "/api/payments/paion/add", {
		"user_address": ALICE, "amount": 1, "description": "bonus",
	}, ADMIN.upper().replace("0X", "0x"))
	assert r.status_code == 200


def test_admin_requires_configuration(client, settings):
	settings.ADMIN_WALLET_ADDRESS = ""
	r = fund(client, ALICE, 1)
	assert r.status_code == 500
	assert r.json()["code"] == "ADMIN_CONFIG_ERROR"


def test_add_validates_target_and_amount(client, admin_settings):
	r = post(client, "/api/payments/paion/add", {"user_address": "bob", "amount": 1, "description": "x"}, ADMIN)
	assert r.json()["code"] == "INVALID_ADDRESS"
	r = post(client, "/api/payments/paion/add", {"user_address": ALICE, "amount": -1, "description": "x"}, ADMIN)
	assert r.status_code == 400
	assert r.json()["code"] == "INVALID_AMOUNT"
	r = post(client, "/api/payments/paion/add", {"user_address": ALICE, "description": "x"}, ADMIN)
	assert r.json()["code"] == "MISSING_FIELDS"


def test_transfer(client, admin_settings):
	fund(client, ALICE, 100)

	r = post(client, "/api/payments/paion/transfer", {"to_address": BOB, "amount": "40.5"}, ALICE)
	assert r.status_code == 200
	body = r.json()
	assert body["message"] == "Transfer completed successfully"
	assert Decimal(body["data"]["from_balance"]["balance"]) == Decimal("59.5")
	assert Decimal(body["data"]["to_balance"]["balance"]) == Decimal("40.5")
	assert body["data"]["correlation_id"]

	r = client.get("/api/payments/paion/transactions", {"transaction_type": "transfer_in"}, headers=as_wallet(BOB))
	[tx] = r.json()["data"]["transactions"]
	assert tx["correlation_id"] == body["data"]["correlation_id"]
	assert tx["source_id"] == ALICE


@pytest.mark.parametrize("body, code", [
	({"to_address": "0x12", "amount": 1}, "INVALID_RECIPIENT"),
	({"to_address": ALICE, "amount": 1}, "INVALID_RECIPIENT"),
	({"to_address": BOB, "amount": 0}, "INVALID_AMOUNT"),
	({"to_address": BOB, "amount": 1000}, "INSUFFICIENT_BALANCE"),
	({"to_address": BOB}, "MISSING_FIELDS"),
])
def test_transfer_failures(client, admin_settings, body, code):
	fund(client, ALICE, 100)
	r = post(client, "/api/payments/paion/transfer", body, ALICE)
	assert r.status_code == 400
	assert r.json()["code"] == code
	assert TokenBalance.objects.get(user_address=ALICE).balance == Decimal("100")


def test_invalid_json(client):
	r = client.post("/api/payments/paion/transfer", data="{nope", content_type="application/json",
					headers=as_wallet(ALICE))
	assert r.status_code == 400
	assert r.json()["code"] == "INVALID_JSON"


def test_lock_and_unlock(client, admin_settings):
	fund(client, ALICE, 60)
	unlock_date = (timezone.now() + timedelta(days=30)).isoformat()

	r = post(client, "/api/payments/paion/lock", {"amount": 30, "description": "stake", "unlock_date": unlock_date},
			 ALICE)
	assert r.status_code == 200
	assert Decimal(r.json()["data"]["locked_amount"]) == Decimal("30")

	r = post(client, "/api/payments/paion/lock", {"amount": 1, "description": "stake", "unlock_date": "2001-01-01"},
			 ALICE)
	assert r.json()["code"] == "INVALID_UNLOCK_DATE"

	r = post(client, "/api/payments/paion/unlock", {"amount": 31, "description": "unstake"}, ALICE)
	assert r.json()["code"] == "INSUFFICIENT_LOCKED_BALANCE"

	r = post(client, "/api/payments/paion/unlock", {"amount": 30, "description": "unstake"}, ALICE)
	data = r.json()["data"]
	assert Decimal(data["balance"]) == Decimal("60")
	assert Decimal(data["locked_amount"]) == 0


def test_transactions_paging_and_validation(client, admin_settings):
	for amount in (1, 2, 3):
		fund(client, ALICE, amount)

	r = client.get("/api/payments/paion/transactions", {"limit": 2}, headers=as_wallet(ALICE))
	data = r.json()["data"]
	assert data["total_count"] == 3
	assert data["has_more"] is True
	assert len(data["transactions"]) == 2

	r = client.get("/api/payments/paion/transactions", {"limit": "many"}, headers=as_wallet(ALICE))
	assert r.status_code == 400
	assert r.json()["code"] == "VALIDATION_ERROR"

	r = client.get("/api/payments/paion/transactions", {"offset": "100000000000000000000"}, headers=as_wallet(ALICE))
	assert r.status_code == 400
	assert r.json()["code"] == "VALIDATION_ERROR"


def test_stats_sources_and_reconcile(client, admin_settings):
	fund(client, ALICE, 30)
	fund(client, BOB, 10)

	stats = client.get("/api/payments/paion/stats").json()["data"]
	assert Decimal(stats["total_supply"]) == Decimal("40")
	assert stats["total_holders"] == 2
	assert Decimal(stats["average_balance"]) == Decimal("20")

	sources = client.get("/api/payments/paion/earning-sources", headers=as_wallet(ALICE)).json()["data"]
	assert Decimal(sources["bonus"]) == Decimal("30")

	report = client.get("/api/payments/paion/reconcile", headers=as_wallet(ALICE)).json()["data"]
	assert report["ok"] is True


# --- Governance ------------------------------------------------------------------

def test_create_list_vote_tally(client, pro_wallet):
	r = create_proposal(client, options=["Yes", "No", "Abstain"])
	assert r.status_code == 201
	proposal = r.json()["data"]
	assert proposal["status"] == "active"
	assert proposal["is_active"] is True
	assert proposal["time_remaining_seconds"] > 0

	listing = client.get("/api/governance/proposals").json()
	assert [p["id"] for p in listing["data"]] == [proposal["id"]]
	assert listing["data"][0]["total_votes"] == 0
	assert listing["pagination"] == {"count": 1}

	url = f"/api/governance/proposals/{proposal['id']}/vote"
	r = post(client, url, {"option": "Abstain", "reasoning": "need more data"}, BOB)
	assert r.status_code == 201
	assert r.json()["data"]["voting_power"] == 1

	r = post(client, url, {"option": "Yes"}, BOB)
	assert r.status_code == 409
	assert r.json()["code"] == "ALREADY_VOTED"

	r = post(client, url, {"option": "Later"}, ALICE)
	assert r.json()["code"] == "INVALID_OPTION"

	tally = client.get(f"/api/governance/proposals/{proposal['id']}/tally").json()["data"]
	assert tally["options"]["Abstain"] == {"count": 1, "voting_power": 1}
	assert tally["options"]["Yes"] == {"count": 0, "voting_power": 0}
	assert tally["total_votes"] == 1

	detail = client.get(f"/api/governance/proposals/{proposal['id']}").json()["data"]
	assert detail["vote_statistics"]["Abstain"]["count"] == 1
	assert detail["total_voting_power"] == 1

	votes = client.get("/api/governance/votes", headers=as_wallet(BOB)).json()["data"]
	assert votes[0]["proposal"]["id"] == proposal["id"]
	assert votes[0]["option"] == "Abstain"


def test_create_requires_threshold(client):
	r = create_proposal(client, creator=BOB)
	assert r.status_code == 403
	assert r.json()["code"] == "INSUFFICIENT_VOTING_POWER"
	assert not Proposal.objects.exists()


def test_create_validation(client, pro_wallet):
	r = create_proposal(client, title="")
	assert r.json()["code"] == "MISSING_FIELDS"
	r = create_proposal(client, options=["Same", "Same"])
	assert r.json()["code"] == "INVALID_OPTIONS"
	r = client.post("/api/governance/proposals", data="{}", content_type="application/json")
	assert r.status_code == 401


def test_list_rejects_bad_status(client):
	r = client.get("/api/governance/proposals", {"status": "open"})
	assert r.status_code == 400
	assert r.json()["code"] == "VALIDATION_ERROR"


def test_missing_proposal(client):
	assert client.get("/api/governance/proposals/9999").status_code == 404
	r = post(client, "/api/governance/proposals/9999/vote", {"option": "Yes"}, BOB)
	assert r.status_code == 404
	assert r.json()["code"] == "PROPOSAL_NOT_FOUND"


def test_cancel(client, pro_wallet, admin_settings):
	first = create_proposal(client).json()["data"]
	second = create_proposal(client).json()["data"]

	r = post(client, f"/api/governance/proposals/{first['id']}/cancel", {}, BOB)
	assert r.status_code == 403
	assert r.json()["code"] == "NOT_PROPOSAL_CREATOR"

	r = post(client, f"/api/governance/proposals/{first['id']}/cancel", {}, ALICE)
	assert r.json()["data"]["status"] == "cancelled"
	r = post(client, f"/api/governance/proposals/{first['id']}/cancel", {}, ALICE)
	assert r.status_code == 409

	r = post(client, f"/api/governance/proposals/{second['id']}/cancel", {}, ADMIN)
	assert r.json()["data"]["status"] == "cancelled"


def test_close_expired(client, admin_settings):
	now = timezone.now()
	Proposal.objects.create(
		creator_address=ALICE, title="Old", description="d", category="c", options=["Yes", "No"], status="active",
		start_date=now - timedelta(days=8), end_date=now - timedelta(days=1),
	)

	assert post(client, "/api/governance/close-expired", {}, ALICE).status_code == 403
	r = post(client, "/api/governance/close-expired", {}, ADMIN)
	data = r.json()["data"]
	assert data["closed_count"] == 1
	assert data["closed_proposals"][0]["status"] == "completed"
	assert post(client, "/api/governance/close-expired", {}, ADMIN).json()["data"]["closed_count"] == 0


def test_voting_power_and_stats(client, pro_wallet):
	data = client.get("/api/governance/voting-power", headers=as_wallet(ALICE)).json()["data"]
	assert data == {"user_address": ALICE, "voting_power": 3, "tier": "PRO"}
	data = client.get("/api/governance/voting-power", headers=as_wallet(BOB)).json()["data"]
	assert data["tier"] == "NOMAD"
	assert data["voting_power"] == 1

	create_proposal(client)
	stats = client.get("/api/governance/stats").json()["data"]
	assert stats["proposals"]["total"] == 1
	assert stats["proposals"]["active"] == 1


def test_store_outage_is_retryable(client, admin_settings):
	fund(client, ALICE, 100)

	with mock.patch.object(QuerySet, "bulk_create", side_effect=OperationalError("disk I/O error")):
		r = post(client, "/api/payments/paion/transfer", {"to_address": BOB, "amount": 10}, ALICE)

	assert r.status_code == 503
	assert r["Retry-After"] == "1"
	assert r.json()["success"] is False
	assert r.json()["code"] == "DATABASE_ERROR"
	assert TokenBalance.objects.get(user_address=ALICE).balance == Decimal("100")


@pytest.mark.parametrize("duration", [100000000, 1.5, "forever"])
def test_create_rejects_bad_duration(client, pro_wallet, duration):
	r = create_proposal(client, duration_days=duration)
	assert r.status_code == 400
	assert r.json()["code"] == "MISSING_REQUIRED_FIELDS"
	assert not Proposal.objects.exists()
