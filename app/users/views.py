from functools import wraps

from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import Sum
from django.shortcuts import render, get_object_or_404, redirect
from django.utils import timezone
from django.views.decorators.http import require_POST

from .forms import LoginForm, UserCreateForm, UserEditForm
from .models import User, RoleCode, RolePermission
from .permissions import list_permission_candidates, group_permissions_by_app

# Roles que aparecen como columnas en la matriz de permisos
MATRIX_ROLES = (
    RoleCode.ADMIN,
    RoleCode.GERENTE,
    RoleCode.COBRANZA,
    RoleCode.VENTAS,
    RoleCode.TECNICO,
)


def manager_required(view):
    """Solo gerencia y administradores administran usuarios y permisos."""

    @wraps(view)
    @login_required
    def wrapper(request, *args, **kwargs):
        if not request.user.is_manager:
            messages.error(request, "Solo gerencia puede administrar usuarios.")
            return redirect("users:dashboard")
        return view(request, *args, **kwargs)

    return wrapper


def _resolve_username(identifier: str) -> str:
    """Permite iniciar sesión con el correo en lugar del usuario."""
    if "@" not in identifier:
        return identifier
    match = User.objects.filter(email__iexact=identifier).only("username").first()
    return match.username if match else identifier


def landing_view(request):
    if request.user.is_authenticated:
        return redirect("users:dashboard")
    return redirect("users:login")


def login_view(request):
    if request.user.is_authenticated:
        return redirect("users:dashboard")

    next_url = request.GET.get("next") or request.POST.get("next") or ""
    form = LoginForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        user = authenticate(
            request,
            username=_resolve_username(form.cleaned_data["identifier"].strip()),
            password=form.cleaned_data["password"],
        )
        if user is None:
            form.add_error(None, "Credenciales inválidas o cuenta inactiva.")
        else:
            login(request, user)
            return redirect(next_url or "users:dashboard")

    return render(request, "users/login.html", {"form": form, "next": next_url})


def logout_view(request):
    logout(request)
    return redirect("users:login")


@login_required
def dashboard_view(request):
    """
    Panel principal. Cobranza ve la cartera del mes, ventas el embudo de
    prospectos y gerencia ambos más el conteo de contratos activos.
    """
    from developments.models import AccessDevelopment, DevelopmentLead, DevelopmentPayment
    from finance.models import Income

    user = request.user
    today = timezone.localdate()
    month_start = today.replace(day=1)

    can_see_all = user.is_manager
    can_see_collections = can_see_all or user.has_role(RoleCode.COBRANZA)
    can_see_leads = can_see_all or user.has_role(RoleCode.VENTAS)

    ctx = {
        "can_see_all": can_see_all,
        "can_see_collections": can_see_collections,
        "can_see_leads": can_see_leads,
        "can_see_users": can_see_all,
        "today": today,
    }

    if can_see_all:
        ctx["developments_active"] = AccessDevelopment.objects.filter(
            status=AccessDevelopment.Status.ACTIVE
        ).count()

    if can_see_collections:
        payments = DevelopmentPayment.objects.select_related("development")
        ctx["payments_due_month"] = payments.open().filter(period=month_start).count()
        ctx["payments_overdue"] = payments.overdue(today).count()
        ctx["income_month"] = (
            Income.objects.filter(income_date__gte=month_start)
            .aggregate(total=Sum("amount"))["total"] or 0
        )
        ctx["recent_payments"] = payments.filter(
            status=DevelopmentPayment.Status.PAID
        ).order_by("-paid_at")[:5]

    if can_see_leads:
        leads = DevelopmentLead.objects.all()
        ctx["leads_open"] = leads.open().count()
        ctx["leads_reminders"] = leads.reminders_due(today).order_by("reminder_date")[:5]

    return render(request, "users/dashboard.html", ctx)


@transaction.atomic
def _save_role_matrix(post, permissions):
    """Cada casilla marcada es un permiso; las desmarcadas se eliminan."""
    for perm in permissions:
        for role_code in MATRIX_ROLES:
            if f"perm__{role_code}__{perm['field_key']}" in post:
                RolePermission.objects.update_or_create(
                    role_code=role_code,
                    permission_key=perm["key"],
                    defaults={"allowed": True, "label": perm["label"], "path": perm["path"]},
                )
            else:
                RolePermission.objects.filter(role_code=role_code, permission_key=perm["key"]).delete()


@manager_required
def role_permissions_view(request):
    grouped = group_permissions_by_app(list_permission_candidates())
    permissions = [perm for group in grouped for perm in group["permissions"]]

    if request.method == "POST":
        _save_role_matrix(request.POST, permissions)
        messages.success(request, "Permisos actualizados.")

    existing = RolePermission.objects.filter(
        permission_key__in=[p["key"] for p in permissions], allowed=True
    ).values_list("role_code", "permission_key")

    return render(request, "users/role_permissions.html", {
        "grouped": grouped,
        "role_defs": [{"code": code, "label": code.label} for code in MATRIX_ROLES],
        "existing_keys": sorted(f"{role}::{key}" for role, key in existing),
    })


@manager_required
def user_list_view(request):
    users = User.objects.prefetch_related("roles").order_by("last_name", "first_name", "username")
    return render(request, "users/user_list.html", {"users": users})


@manager_required
def user_create_view(request):
    form = UserCreateForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        form.save()
        messages.success(request, "Usuario creado.")
        return redirect("users:user_list")
    return render(request, "users/user_form.html", {"form": form, "is_create": True})


@manager_required
def user_edit_view(request, pk):
    user_obj = get_object_or_404(User, pk=pk)
    form = UserEditForm(request.POST or None, instance=user_obj)
    if request.method == "POST" and form.is_valid():
        form.save()
        messages.success(request, "Usuario actualizado.")
        return redirect("users:user_list")
    return render(request, "users/user_form.html", {"form": form, "user_obj": user_obj, "is_create": False})


@require_POST
@manager_required
def user_toggle_active(request, pk):
    user_obj = get_object_or_404(User, pk=pk)
    if user_obj.pk == request.user.pk:
        messages.error(request, "No puedes desactivar tu propia cuenta.")
    else:
        user_obj.is_active = not user_obj.is_active
        user_obj.save(update_fields=["is_active"])
        estado = "activado" if user_obj.is_active else "desactivado"
        messages.success(request, f"Usuario {user_obj.username} {estado}.")
    return redirect("users:user_list")
