"""HTTP endpoints for the tier stub mirroring a read/assign tier surface"""

import json
from django.http import JsonResponse, HttpResponseBadRequest
from django.views.decorators.csrf import csrf_exempt
from core.adapters.tier_adapter import TierVotingPowerProvider
from .models import NftTier, NftTierRecord


def get_tier(request, address: str):
	"""
	GET: Return the wallet's tier and the voting power it maps to
	"""
	provider = TierVotingPowerProvider()
	tier = provider.get_tier(address)
	return JsonResponse({"user_address": address, "tier": tier, "voting_power": provider.power_by_tier[tier]})


@csrf_exempt
def set_tier(request):
	"""
	POST: Assign a tier to a wallet (simulates minting a tier NFT)
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	address = body.get("user_address")
	tier = str(body.get("tier", "")).upper()
	if not address:
		return HttpResponseBadRequest("user_address required")
	if tier not in NftTier.values:
		return HttpResponseBadRequest(f"tier must be one of {', '.join(NftTier.values)}")
	obj, _ = NftTierRecord.objects.update_or_create(user_address=address, defaults={"tier": tier})
	return JsonResponse({"user_address": obj.user_address, "tier": obj.tier}, status=201)
