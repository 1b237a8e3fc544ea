from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional

from django.urls import URLPattern, URLResolver, get_resolver

from .models import RolePermission


EXEMPT_URL_NAMES = {
    "users:landing",
    "users:login",
    "users:logout",
}
EXEMPT_NAMESPACES = {"admin", "developments_api"}


def is_exempt(view_name: str) -> bool:
    namespace = view_name.split(":", 1)[0] if ":" in view_name else ""
    return view_name in EXEMPT_URL_NAMES or namespace in EXEMPT_NAMESPACES


@dataclass(frozen=True)
class PermissionCandidate:
    key: str
    label: str
    path: str
    app: str


def _view_label(pattern: URLPattern) -> str:
    callback = pattern.callback
    view_class = getattr(callback, "view_class", None)
    if view_class is not None:
        return view_class.__name__
    return getattr(callback, "__name__", "view")


def _iter_patterns(
    patterns: Iterable,
    namespace: Optional[str] = None,
    prefix: str = "",
    app: Optional[str] = None,
) -> Iterable[PermissionCandidate]:
    for p in patterns:
        if isinstance(p, URLResolver):
            ns = namespace
            if p.namespace:
                ns = f"{namespace}:{p.namespace}" if namespace else p.namespace
            yield from _iter_patterns(
                p.url_patterns, ns, prefix + str(p.pattern), p.app_name or app
            )
            continue

        if not isinstance(p, URLPattern) or not p.name:
            continue

        key = f"{namespace}:{p.name}" if namespace else p.name
        if is_exempt(key):
            continue

        yield PermissionCandidate(
            key=key, label=_view_label(p), path=prefix + str(p.pattern), app=app or ""
        )


def list_permission_candidates() -> List[PermissionCandidate]:
    items = list(_iter_patterns(get_resolver().url_patterns))
    return sorted(items, key=lambda x: (x.app, x.key))


def user_has_permission(user, permission_key: str) -> bool:
    if getattr(user, "is_superuser", False):
        return True
    if not user.is_authenticated:
        return False
    roles = user.role_codes()
    if not roles:
        return False
    return RolePermission.objects.filter(
        permission_key=permission_key,
        role_code__in=roles,
        allowed=True,
    ).exists()


def permission_key_to_field(permission_key: str) -> str:
    return permission_key.replace(":", "__")


# ── Agrupación y clasificación ──────────────────────────────

PERMISSION_LABELS = {
    # ── Fraccionamientos ──
    "developments:development_list": "Ver fraccionamientos",
    "developments:development_create": "Crear contrato de fraccionamiento",
    "developments:development_detail": "Ver detalle de fraccionamiento",
    "developments:development_edit": "Editar fraccionamiento",
    "developments:development_status": "Cambiar estado del contrato",
    "developments:development_sync_schedule": "Completar cronograma",
    "developments:development_schedule_pdf": "Descargar cronograma PDF",
    "developments:schedule_preview": "Previsualizar cronograma",
    "developments:payment_list": "Ver cobros",
    "developments:payment_register": "Registrar pago",
    "developments:notice_list": "Ver avisos de pago",
    "developments:notice_pdf": "Descargar aviso PDF",
    "developments:notice_send": "Enviar aviso por correo",
    "developments:receipt_list": "Ver recibos",
    "developments:receipt_pdf": "Descargar recibo PDF",
    "developments:receipt_send": "Enviar recibo por correo",
    "developments:investor_overview": "Ver inversionistas",
    "developments:lead_list": "Ver prospectos",
    "developments:lead_create": "Crear prospecto",
    "developments:lead_detail": "Ver detalle de prospecto",
    "developments:lead_edit": "Editar prospecto",
    "developments:lead_delete": "Eliminar prospecto",
    "developments:lead_comment_add": "Comentar prospecto",
    "developments:lead_convert": "Convertir prospecto a contrato",
    "developments:quote_calculator": "Usar cotizador",
    "developments:quote_save_lead": "Guardar cotización como prospecto",
    "developments:quote_config": "Configurar precios del cotizador",
    # ── Órdenes ──
    "orders:order_list": "Ver órdenes",
    "orders:order_detail": "Ver detalle de orden",
    "orders:client_list": "Ver clientes",
    # ── Finanzas ──
    "finance:income_list": "Ver ingresos",
    "finance:income_export_csv": "Exportar ingresos a CSV",
    "finance:collection_list": "Ver cobranza pendiente",
    # ── Usuarios ──
    "users:dashboard": "Ver dashboard",
    "users:role_permissions": "Gestionar roles y permisos",
    "users:user_list": "Ver usuarios",
    "users:user_create": "Crear usuario",
    "users:user_edit": "Editar usuario",
    "users:user_toggle_active": "Activar/desactivar usuario",
}

APP_LABELS = {
    "developments": "Fraccionamientos",
    "orders": "Órdenes",
    "finance": "Finanzas",
    "users": "Usuarios",
}

# Palabras clave para clasificar acciones
_ACTION_MAP = {
    "ver": (
        "list", "detail", "pdf", "overview", "dashboard", "preview", "calculator",
    ),
    "editar": (
        "create", "edit", "status", "sync", "register", "send", "add",
        "convert", "save", "config", "toggle", "permissions",
    ),
    "eliminar": (
        "delete",
    ),
}


def _classify_action(permission_key: str) -> str:
    """Clasifica un permission_key en ver/editar/eliminar."""
    name = permission_key.rsplit(":", 1)[-1].lower()
    for action, keywords in _ACTION_MAP.items():
        if any(kw in name for kw in keywords):
            return action
    return "ver"


def group_permissions_by_app(candidates: List[PermissionCandidate]) -> List[dict]:
    """Agrupa permisos por app, en el orden de APP_LABELS."""
    groups: OrderedDict = OrderedDict()
    for p in candidates:
        groups.setdefault(p.app or "other", []).append({
            "key": p.key,
            "label": PERMISSION_LABELS.get(p.key, p.label),
            "path": p.path,
            "field_key": permission_key_to_field(p.key),
            "action": _classify_action(p.key),
        })

    ordered = [app for app in APP_LABELS if app in groups]
    ordered += [app for app in groups if app not in APP_LABELS]
    return [
        {
            "app": app_key,
            "app_label": APP_LABELS.get(app_key, app_key.title()),
            "permissions": groups[app_key],
        }
        for app_key in ordered
    ]
