import json
import logging
from datetime import date

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .services.processing import process_access_orders

logger = logging.getLogger(__name__)


def _json_error(message, status=400, code="bad_request"):
    return JsonResponse({"error": message, "code": code}, status=status)


def _extract_api_token(request):
    auth = request.headers.get("Authorization", "").strip()
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return request.headers.get("X-API-Key", "").strip()


def _check_api_token(request):
    expected = (getattr(settings, "ACCESS_API_TOKEN", "") or "").strip()
    if not expected:
        return _json_error("API no configurada", status=503, code="api_disabled")
    if _extract_api_token(request) != expected:
        return _json_error("Token inválido", status=401, code="invalid_token")
    return None


def _parse_payload(request):
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValueError("JSON inválido")
    if not isinstance(payload, dict):
        raise ValueError("JSON inválido")
    return payload


@csrf_exempt
@require_http_methods(["POST"])
def api_process_access_orders(request):
    """
    Ejecuta la corrida diaria (órdenes programadas y cobranza pendiente).
    Acepta opcionalmente {"fecha": "YYYY-MM-DD"} para procesar otra fecha.
    """
    error = _check_api_token(request)
    if error:
        return error

    try:
        payload = _parse_payload(request)
        raw_date = payload.get("fecha")
        if raw_date is not None and not isinstance(raw_date, str):
            raise ValueError("fecha debe ser texto YYYY-MM-DD")
        today = date.fromisoformat(raw_date) if raw_date else None
    except ValueError as exc:
        return _json_error(str(exc) or "Fecha inválida", status=400, code="invalid_payload")

    result = process_access_orders(today=today)
    logger.info("Corrida de accesos solicitada vía API")
    return JsonResponse({"ok": not result.errors, **result.as_dict()})
