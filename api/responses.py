"""JSON envelope shared by every API view: {success, data} or {success, error, code}."""

import json
from functools import wraps

from django.http import JsonResponse

from core.errors import ServiceError


class InvalidJSON(ServiceError):
	code = "INVALID_JSON"
	default_message = "Request body must be a JSON object"


class MissingFields(ServiceError):
	code = "MISSING_FIELDS"
	default_message = "Required fields are missing"


def ok(data, status: int = 200, **extra) -> JsonResponse:
	# JsonResponse's DjangoJSONEncoder renders Decimal/UUID as str and datetimes as ISO-8601
	return JsonResponse({"success": True, "data": data, **extra}, status=status)


def fail(error: str, code: str, status: int = 400) -> JsonResponse:
	return JsonResponse({"success": False, "error": error, "code": code}, status=status)


def service_errors(view):
	"""
	Render ServiceError subclasses as the failure envelope; anything else propagates.
	"""
	@wraps(view)
	def wrapper(request, *args, **kwargs):
		try:
			return view(request, *args, **kwargs)
		except ServiceError as e:
			response = fail(e.message, e.code, e.status_code)
			if e.retryable:
				response["Retry-After"] = "1"
			return response
	return wrapper


def read_json(request) -> dict:
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		raise InvalidJSON("Invalid JSON")
	if not isinstance(body, dict):
		raise InvalidJSON()
	return body


def require_fields(body: dict, *names: str):
	missing = [n for n in names if body.get(n) in (None, "")]
	if missing:
		raise MissingFields(f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")
