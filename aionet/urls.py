"""URL routing for the API + local tier stub.


The /api/ namespace exposes ledger and governance operations; /stub/tiers/ exposes
the deterministic NFT tier registry read by the voting power adapter. In
production, the stub is replaced by the real tier source.
"""

from django.contrib import admin
from django.urls import path, include


urlpatterns = [
	path("admin/", admin.site.urls),
	path("api/", include("api.urls")),
	path("stub/tiers/", include("tier_stub.urls")),
]
