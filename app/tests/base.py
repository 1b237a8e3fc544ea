from django.test import TestCase

from users.models import RoleCode, RolePermission

from .factories import Factory


class BaseAppTestCase(TestCase):
    """Usuarios por rol y permisos por nombre de vista, como los carga la matriz de roles."""

    default_password = "pass1234"

    def make_user(self, *, role=RoleCode.TECNICO, **kwargs):
        return Factory.user(role=role, password=self.default_password, **kwargs)

    def login_as(self, user):
        self.client.force_login(user)
        return user

    def grant_permissions(self, role_code, permission_keys):
        for key in permission_keys:
            RolePermission.objects.update_or_create(
                role_code=role_code,
                permission_key=key,
                defaults={"allowed": True, "label": key, "path": ""},
            )

    def login_with_permissions(self, role_code, permission_keys, **user_kwargs):
        """Crea un usuario del rol, le concede las vistas indicadas e inicia sesión."""
        self.grant_permissions(role_code, permission_keys)
        return self.login_as(self.make_user(role=role_code, **user_kwargs))
