from io import StringIO

from django.core.management import call_command
from django.urls import reverse

from users.models import RoleCode, RolePermission, User, UserRole
from users.permissions import group_permissions_by_app, list_permission_candidates, user_has_permission
from tests.base import BaseAppTestCase
from tests.factories import Factory


class UsersAuthAndPermissionTests(BaseAppTestCase):
    def setUp(self):
        self.gerente = self.make_user(role=RoleCode.GERENTE, username="gerente")
        self.cobranza = self.make_user(role=RoleCode.COBRANZA, username="cobranza")
        self.grant_permissions(RoleCode.GERENTE, ["users:dashboard", "users:user_list"])
        self.grant_permissions(RoleCode.COBRANZA, ["users:dashboard"])

    def test_login_view_authenticates_and_redirects(self):
        response = self.client.post(
            reverse("users:login"),
            {"identifier": "gerente", "password": "pass1234"},
        )
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, reverse("users:dashboard"))

    def test_login_accepts_email_identifier(self):
        response = self.client.post(
            reverse("users:login"),
            {"identifier": self.gerente.email.upper(), "password": "pass1234"},
        )
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, reverse("users:dashboard"))

    def test_login_rejects_bad_password(self):
        response = self.client.post(
            reverse("users:login"),
            {"identifier": "gerente", "password": "incorrecta"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Credenciales inválidas")

    def test_middleware_protected_view_redirects_anonymous_and_blocks_wrong_role(self):
        anonymous = self.client.get(reverse("users:user_list"))
        self.assertEqual(anonymous.status_code, 302)
        self.assertIn(reverse("users:login"), anonymous.url)

        self.client.force_login(self.cobranza)
        forbidden = self.client.get(reverse("users:user_list"))
        self.assertEqual(forbidden.status_code, 403)

        self.client.force_login(self.gerente)
        allowed = self.client.get(reverse("users:user_list"))
        self.assertEqual(allowed.status_code, 200)

    def test_superuser_bypasses_role_permission_restriction(self):
        superuser = self.make_user(
            role=RoleCode.ADMIN,
            username="root",
            is_superuser=True,
            is_staff=True,
        )
        self.client.force_login(superuser)
        response = self.client.get(reverse("users:user_list"))
        self.assertEqual(response.status_code, 200)

    def test_extra_roles_grant_permissions(self):
        tecnico = self.make_user(role=RoleCode.TECNICO)
        self.assertFalse(user_has_permission(tecnico, "users:user_list"))

        gerente_role, _ = UserRole.objects.get_or_create(code=RoleCode.GERENTE)
        tecnico.roles.add(gerente_role)
        self.assertTrue(tecnico.has_role(RoleCode.GERENTE))
        self.assertTrue(user_has_permission(tecnico, "users:user_list"))

    def test_dashboard_renders_for_collections_role(self):
        self.client.force_login(self.cobranza)
        response = self.client.get(reverse("users:dashboard"))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context["can_see_collections"])
        self.assertFalse(response.context["can_see_leads"])

    def test_api_namespace_is_exempt_from_role_middleware(self):
        response = self.client.post(reverse("developments_api:procesar_ordenes"))
        self.assertNotEqual(response.status_code, 302)


class UserManagementTests(BaseAppTestCase):
    def setUp(self):
        self.gerente = self.login_as(self.make_user(role=RoleCode.GERENTE, username="gerente"))
        self.grant_permissions(RoleCode.GERENTE, [
            "users:user_list",
            "users:user_create",
            "users:user_toggle_active",
            "users:role_permissions",
        ])

    def test_create_user_requires_password(self):
        response = self.client.post(reverse("users:user_create"), {
            "username": "nuevo",
            "email": "nuevo@example.com",
            "role": RoleCode.COBRANZA,
            "is_active": "on",
        })
        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(username="nuevo").exists())

    def test_create_user_sets_password(self):
        response = self.client.post(reverse("users:user_create"), {
            "username": "nuevo",
            "email": "nuevo@example.com",
            "role": RoleCode.COBRANZA,
            "is_active": "on",
            "password1": "segura123",
            "password2": "segura123",
        })
        self.assertEqual(response.status_code, 302)
        created = User.objects.get(username="nuevo")
        self.assertTrue(created.check_password("segura123"))
        self.assertEqual(created.role, RoleCode.COBRANZA)

    def test_toggle_active_ignores_own_account(self):
        other = self.make_user(role=RoleCode.VENTAS)
        self.client.post(reverse("users:user_toggle_active", args=[other.pk]))
        self.client.post(reverse("users:user_toggle_active", args=[self.gerente.pk]))

        other.refresh_from_db()
        self.gerente.refresh_from_db()
        self.assertFalse(other.is_active)
        self.assertTrue(self.gerente.is_active)

    def test_role_permissions_post_replaces_matrix(self):
        self.login_as(self.make_user(role=RoleCode.ADMIN, is_superuser=True))
        field = "perm__VENTAS__developments__lead_list"
        response = self.client.post(reverse("users:role_permissions"), {field: "on"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(RolePermission.objects.filter(
            role_code=RoleCode.VENTAS, permission_key="developments:lead_list"
        ).exists())

        self.client.post(reverse("users:role_permissions"), {})
        self.assertFalse(RolePermission.objects.filter(
            role_code=RoleCode.VENTAS, permission_key="developments:lead_list"
        ).exists())


class PermissionCatalogTests(BaseAppTestCase):
    def test_candidates_skip_api_and_exempt_names(self):
        keys = {c.key for c in list_permission_candidates()}
        self.assertIn("developments:development_list", keys)
        self.assertIn("developments:quote_calculator", keys)
        self.assertNotIn("users:login", keys)
        self.assertFalse(any(k.startswith("developments_api:") for k in keys))

    def test_groups_follow_app_order_and_classify_actions(self):
        grouped = group_permissions_by_app(list_permission_candidates())
        self.assertEqual(grouped[0]["app"], "developments")
        perms = {p["key"]: p for p in grouped[0]["permissions"]}
        self.assertEqual(perms["developments:lead_delete"]["action"], "eliminar")
        self.assertEqual(perms["developments:payment_register"]["action"], "editar")
        self.assertEqual(perms["developments:payment_list"]["action"], "ver")
        self.assertEqual(perms["developments:payment_list"]["label"], "Ver cobros")

    def test_seed_role_permissions_command(self):
        out = StringIO()
        call_command("seed_role_permissions", stdout=out)
        self.assertIn("Permisos cargados", out.getvalue())

        cobranza = Factory.user(role=RoleCode.COBRANZA)
        ventas = Factory.user(role=RoleCode.VENTAS)
        self.assertTrue(user_has_permission(cobranza, "developments:payment_register"))
        self.assertFalse(user_has_permission(cobranza, "developments:quote_config"))
        self.assertTrue(user_has_permission(ventas, "developments:lead_convert"))
        self.assertFalse(user_has_permission(ventas, "developments:payment_register"))
