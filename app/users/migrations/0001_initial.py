import django.contrib.auth.models
import django.contrib.auth.validators
import django.utils.timezone
from django.db import migrations, models

ROLE_CHOICES = [
    ("ADMIN", "Administrador"),
    ("GERENTE", "Gerente"),
    ("COBRANZA", "Cobranza"),
    ("VENTAS", "Ventas"),
    ("TECNICO", "Técnico"),
]


def create_roles(apps, schema_editor):
    UserRole = apps.get_model("users", "UserRole")
    for code, _label in ROLE_CHOICES:
        UserRole.objects.get_or_create(code=code)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(choices=ROLE_CHOICES, max_length=20, unique=True, verbose_name="Código")),
            ],
            options={
                "verbose_name": "Rol adicional",
                "verbose_name_plural": "Roles adicionales",
            },
        ),
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False, help_text="Designates that this user has all permissions without explicitly assigning them.", verbose_name="superuser status")),
                ("username", models.CharField(error_messages={"unique": "A user with that username already exists."}, help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.", max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name="username")),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                ("is_staff", models.BooleanField(default=False, help_text="Designates whether the user can log into this admin site.", verbose_name="staff status")),
                ("is_active", models.BooleanField(default=True, help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.", verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("role", models.CharField(choices=ROLE_CHOICES, default="TECNICO", max_length=20)),
                ("phone", models.CharField(blank=True, max_length=20, verbose_name="Celular de Contacto")),
                ("groups", models.ManyToManyField(blank=True, help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.", related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(blank=True, help_text="Specific permissions for this user.", related_name="user_set", related_query_name="user", to="auth.permission", verbose_name="user permissions")),
                ("roles", models.ManyToManyField(blank=True, related_name="users", to="users.userrole")),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="RolePermission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role_code", models.CharField(choices=ROLE_CHOICES, max_length=20, verbose_name="Rol")),
                ("permission_key", models.CharField(max_length=200, verbose_name="Permiso")),
                ("allowed", models.BooleanField(default=True)),
                ("label", models.CharField(blank=True, max_length=200, verbose_name="Etiqueta")),
                ("path", models.CharField(blank=True, max_length=200, verbose_name="Ruta")),
            ],
            options={
                "unique_together": {("role_code", "permission_key")},
                "verbose_name": "Permiso por rol",
                "verbose_name_plural": "Permisos por rol",
            },
        ),
        migrations.RunPython(create_roles, migrations.RunPython.noop),
    ]
