from django.urls import path
from .views import get_tier, set_tier


urlpatterns = [
	path("set", set_tier),
	path("<str:address>", get_tier),
]
