import logging

from django.conf import settings
from django.shortcuts import redirect, render, resolve_url
from django.urls import Resolver404, resolve

from .permissions import PERMISSION_LABELS, is_exempt, user_has_permission

logger = logging.getLogger(__name__)


class RolePermissionMiddleware:
    """
    Niega por defecto toda vista con nombre que ningún rol del usuario tenga
    asignada. Quedan fuera el login, el admin (con su propio acceso) y la API
    de procesamiento, que se autentica con token.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        try:
            view_name = resolve(request.path_info).view_name
        except Resolver404:
            return self.get_response(request)

        if not view_name or is_exempt(view_name):
            return self.get_response(request)

        if not request.user.is_authenticated:
            login_url = resolve_url(settings.LOGIN_URL)
            return redirect(f"{login_url}?next={request.get_full_path()}")

        if user_has_permission(request.user, view_name):
            return self.get_response(request)

        logger.info("Acceso denegado a %s para el usuario %s", view_name, request.user.pk)
        return render(request, "users/403.html", {
            "view_name": view_name,
            "view_label": PERMISSION_LABELS.get(view_name, view_name),
        }, status=403)
