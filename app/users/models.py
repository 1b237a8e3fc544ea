from django.db import models
from django.contrib.auth.models import AbstractUser


class RoleCode(models.TextChoices):
    ADMIN = 'ADMIN', 'Administrador'
    GERENTE = 'GERENTE', 'Gerente'
    COBRANZA = 'COBRANZA', 'Cobranza'
    VENTAS = 'VENTAS', 'Ventas'
    TECNICO = 'TECNICO', 'Técnico'


# Roles que administran usuarios y la matriz de permisos
MANAGER_ROLES = (RoleCode.ADMIN, RoleCode.GERENTE)


class User(AbstractUser):
    """
    Personal de la empresa. ``role`` es el rol principal; ``roles`` suma roles
    adicionales (p. ej. un gerente que también cobra).
    """
    Role = RoleCode

    role = models.CharField(max_length=20, choices=RoleCode.choices, default=RoleCode.TECNICO)
    roles = models.ManyToManyField("users.UserRole", blank=True, related_name="users")
    phone = models.CharField("Celular de Contacto", max_length=20, blank=True)

    def __str__(self):
        return f"{self.display_name} ({self.get_role_display()})"

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    def role_codes(self) -> set:
        codes = {self.role} if self.role else set()
        if self.pk:
            codes.update(self.roles.values_list("code", flat=True))
        return codes

    def has_role(self, code: str) -> bool:
        return code in self.role_codes()

    def has_any_role(self, *codes) -> bool:
        return bool(self.role_codes().intersection(codes))

    @property
    def is_manager(self):
        return self.is_superuser or self.has_any_role(*MANAGER_ROLES)


class UserRole(models.Model):
    code = models.CharField("Código", max_length=20, choices=RoleCode.choices, unique=True)

    class Meta:
        verbose_name = "Rol adicional"
        verbose_name_plural = "Roles adicionales"

    def __str__(self):
        return self.get_code_display()


class RolePermission(models.Model):
    """Permiso de un rol sobre una vista con nombre (``app:nombre_de_url``)."""

    role_code = models.CharField("Rol", max_length=20, choices=RoleCode.choices)
    permission_key = models.CharField("Permiso", max_length=200)
    allowed = models.BooleanField(default=True)
    label = models.CharField("Etiqueta", max_length=200, blank=True)
    path = models.CharField("Ruta", max_length=200, blank=True)

    class Meta:
        unique_together = ("role_code", "permission_key")
        verbose_name = "Permiso por rol"
        verbose_name_plural = "Permisos por rol"

    def __str__(self):
        return f"{self.get_role_code_display()} -> {self.permission_key}"
