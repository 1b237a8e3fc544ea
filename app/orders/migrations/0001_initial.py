import django.db.models.deletion
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Client",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="Nombre")),
                ("name_key", models.CharField(db_index=True, editable=False, max_length=200)),
                ("address", models.CharField(default="Sin dirección", max_length=255, verbose_name="Dirección")),
                ("phone", models.CharField(blank=True, max_length=20, verbose_name="Teléfono")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="Correo")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Cliente",
                "verbose_name_plural": "Clientes",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ServiceType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120, unique=True, verbose_name="Nombre")),
                ("is_active", models.BooleanField(default=True, verbose_name="Activo")),
            ],
            options={
                "verbose_name": "Tipo de servicio",
                "verbose_name_plural": "Tipos de servicio",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.CharField(max_length=30, unique=True, verbose_name="Número de orden")),
                ("description", models.TextField(verbose_name="Descripción")),
                ("estimated_cost", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Costo estimado")),
                ("delivery_date", models.DateField(verbose_name="Fecha de entrega")),
                ("status", models.CharField(choices=[("pendiente", "Pendiente"), ("en_proceso", "En proceso"), ("terminada", "Terminada"), ("cancelada", "Cancelada")], default="pendiente", max_length=20)),
                ("notes", models.TextField(blank=True, verbose_name="Notas")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="orders.client")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_orders", to=settings.AUTH_USER_MODEL)),
                ("service_type", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="orders.servicetype")),
            ],
            options={
                "verbose_name": "Orden de servicio",
                "verbose_name_plural": "Órdenes de servicio",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="Servicio")),
                ("description", models.TextField(blank=True, verbose_name="Descripción")),
                ("quantity", models.PositiveIntegerField(default=1, verbose_name="Cantidad")),
                ("unit_price", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Precio unitario")),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Total")),
                ("pricing_locked", models.BooleanField(default=False, verbose_name="Precio bloqueado")),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
                ("service_type", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, to="orders.servicetype")),
            ],
            options={
                "verbose_name": "Partida de orden",
                "verbose_name_plural": "Partidas de orden",
            },
        ),
    ]
