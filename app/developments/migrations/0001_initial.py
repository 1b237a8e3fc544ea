import uuid
from decimal import Decimal

import core.storages
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

ACCOUNT_TYPE_CHOICES = [("fiscal", "Fiscal"), ("no_fiscal", "No fiscal")]
PAYMENT_METHOD_CHOICES = [
    ("efectivo", "Efectivo"),
    ("transferencia", "Transferencia"),
    ("tarjeta", "Tarjeta"),
    ("tarjeta_debito", "Tarjeta de débito"),
    ("tarjeta_credito", "Tarjeta de crédito"),
    ("cheque", "Cheque"),
]
BILLING_DAY_VALIDATORS = [
    django.core.validators.MinValueValidator(1),
    django.core.validators.MaxValueValidator(28),
]

QUOTE_CONFIG_ROWS = [
    ("system_base_cost", "Costo base del sistema", "Cargo mensual fijo por fraccionamiento", "3500"),
    ("vehicular_gate_single_cost", "Portón vehicular sencillo", "Costo mensual por portón sencillo", "1200"),
    ("vehicular_gate_double_cost", "Portón vehicular doble", "Costo mensual por portón doble", "1800"),
    ("pedestrian_door_cost", "Puerta peatonal", "Costo mensual por puerta peatonal", "600"),
    ("controlled_exit_surcharge", "Salida controlada", "Recargo mensual por salida controlada", "800"),
    ("per_house_base_cost", "Costo por casa", "Costo mensual por vivienda", "35"),
    ("discount_18_months", "Descuento 18 meses", "Porcentaje de descuento", "0"),
    ("discount_24_months", "Descuento 24 meses", "Porcentaje de descuento", "5"),
    ("discount_36_months", "Descuento 36 meses", "Porcentaje de descuento", "10"),
    ("implementation_fee_months", "Meses de implementación", "Mensualidades cobradas como implementación", "1"),
]


def seed_quote_config(apps, schema_editor):
    QuoteConfig = apps.get_model("developments", "QuoteConfig")
    for order, (key, label, description, value) in enumerate(QUOTE_CONFIG_ROWS, start=1):
        QuoteConfig.objects.get_or_create(
            key=key,
            defaults={
                "label": label,
                "description": description,
                "value": Decimal(value),
                "display_order": order,
            },
        )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="DevelopmentLead",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="Fraccionamiento")),
                ("address", models.CharField(blank=True, max_length=255, verbose_name="Dirección")),
                ("contact_name", models.CharField(blank=True, max_length=150, verbose_name="Contacto")),
                ("contact_phone", models.CharField(blank=True, max_length=20, verbose_name="Teléfono")),
                ("contact_email", models.EmailField(blank=True, max_length=254, verbose_name="Correo")),
                ("monthly_payment_proposed", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="Mensualidad propuesta")),
                ("status", models.CharField(choices=[("nuevo", "Nuevo"), ("contactado", "Contactado"), ("negociando", "Negociando"), ("propuesta_enviada", "Propuesta enviada"), ("aceptado", "Aceptado"), ("rechazado", "Rechazado"), ("pausado", "Pausado")], default="nuevo", max_length=20)),
                ("last_activity_at", models.DateTimeField(blank=True, null=True, verbose_name="Última actividad")),
                ("last_activity_description", models.CharField(blank=True, max_length=255, verbose_name="Descripción de actividad")),
                ("comments", models.TextField(blank=True, verbose_name="Comentario más reciente")),
                ("reminder_date", models.DateField(blank=True, null=True, verbose_name="Recordatorio")),
                ("has_investor", models.BooleanField(default=False, verbose_name="Con inversionista")),
                ("investor_name", models.CharField(blank=True, max_length=150, verbose_name="Inversionista")),
                ("investor_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="Monto de inversión")),
                ("vehicular_gates_single", models.PositiveIntegerField(default=0, verbose_name="Portones vehiculares sencillos")),
                ("vehicular_gates_double", models.PositiveIntegerField(default=0, verbose_name="Portones vehiculares dobles")),
                ("pedestrian_doors", models.PositiveIntegerField(default=0, verbose_name="Puertas peatonales")),
                ("controlled_exits", models.PositiveIntegerField(default=0, verbose_name="Salidas controladas")),
                ("num_houses", models.PositiveIntegerField(default=0, verbose_name="Número de casas")),
                ("contract_months", models.PositiveIntegerField(blank=True, null=True, verbose_name="Meses de contrato")),
                ("quote_breakdown", models.JSONField(blank=True, default=dict, verbose_name="Desglose de cotización")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_development_leads", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Prospecto de fraccionamiento",
                "verbose_name_plural": "Prospectos de fraccionamiento",
                "ordering": ["-updated_at"],
            },
        ),
        migrations.CreateModel(
            name="LeadComment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("comment", models.TextField(verbose_name="Comentario")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="development_lead_comments", to=settings.AUTH_USER_MODEL)),
                ("lead", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="comment_history", to="developments.developmentlead")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="AccessDevelopment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200, verbose_name="Nombre del fraccionamiento")),
                ("address", models.CharField(blank=True, max_length=255, verbose_name="Dirección")),
                ("contact_name", models.CharField(blank=True, max_length=150, verbose_name="Contacto")),
                ("contact_phone", models.CharField(blank=True, max_length=20, verbose_name="Teléfono")),
                ("contact_email", models.EmailField(blank=True, max_length=254, verbose_name="Correo")),
                ("contract_start_date", models.DateField(verbose_name="Inicio de contrato")),
                ("contract_duration_months", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name="Duración (meses)")),
                ("monthly_payment", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="Mensualidad")),
                ("payment_day", models.PositiveSmallIntegerField(default=1, validators=BILLING_DAY_VALIDATORS, verbose_name="Día de pago")),
                ("service_day", models.PositiveSmallIntegerField(default=1, validators=BILLING_DAY_VALIDATORS, verbose_name="Día de servicio")),
                ("auto_generate_orders", models.BooleanField(default=True, verbose_name="Generar órdenes automáticamente")),
                ("has_investor", models.BooleanField(default=False, verbose_name="Con inversionista")),
                ("investor_name", models.CharField(blank=True, max_length=150, verbose_name="Inversionista")),
                ("investor_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Monto de inversión")),
                ("investor_profit_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5, verbose_name="Ganancia del inversionista (%)")),
                ("investor_recovery_months", models.PositiveIntegerField(default=0, verbose_name="Meses de recuperación")),
                ("investor_start_earning_date", models.DateField(blank=True, null=True, verbose_name="Inicio de ganancias")),
                ("investor_account_type", models.CharField(choices=ACCOUNT_TYPE_CHOICES, default="fiscal", max_length=10, verbose_name="Cuenta de la inversión")),
                ("status", models.CharField(choices=[("active", "Activo"), ("suspended", "Suspendido"), ("cancelled", "Cancelado"), ("completed", "Completado")], default="active", max_length=20)),
                ("notes", models.TextField(blank=True, verbose_name="Notas")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("client", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="developments", to="orders.client")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_developments", to=settings.AUTH_USER_MODEL)),
                ("installation_order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="installed_developments", to="orders.order")),
                ("lead", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="developments", to="developments.developmentlead")),
            ],
            options={
                "verbose_name": "Fraccionamiento",
                "verbose_name_plural": "Fraccionamientos",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="InvestorLoan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("loan_number", models.CharField(max_length=30, unique=True, verbose_name="Número de préstamo")),
                ("investor_name", models.CharField(max_length=150, verbose_name="Inversionista")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="Capital invertido")),
                ("profit_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5, verbose_name="Ganancia (%)")),
                ("recovery_months", models.PositiveIntegerField(default=0, verbose_name="Meses de recuperación")),
                ("amount_recovered", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Capital recuperado")),
                ("amount_earned", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Ganancia acumulada")),
                ("account_type", models.CharField(choices=ACCOUNT_TYPE_CHOICES, default="fiscal", max_length=10)),
                ("status", models.CharField(choices=[("active", "Recuperando"), ("recovered", "Capital recuperado"), ("earning", "Generando ganancias"), ("completed", "Completado")], default="active", max_length=20)),
                ("start_date", models.DateField(verbose_name="Inicio")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("development", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="investor_loan", to="developments.accessdevelopment")),
            ],
            options={
                "verbose_name": "Préstamo de inversionista",
                "verbose_name_plural": "Préstamos de inversionistas",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="DevelopmentPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("period", models.DateField(verbose_name="Periodo")),
                ("due_date", models.DateField(verbose_name="Fecha límite")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="Monto")),
                ("investor_portion", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Parte inversionista")),
                ("company_portion", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Parte empresa")),
                ("is_recovery_period", models.BooleanField(default=False, verbose_name="Periodo de recuperación")),
                ("status", models.CharField(choices=[("pending", "Pendiente"), ("paid", "Pagado"), ("overdue", "Vencido"), ("cancelled", "Cancelado")], default="pending", max_length=20)),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="Fecha de pago")),
                ("payment_method", models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=20)),
                ("payment_reference", models.CharField(blank=True, max_length=100, verbose_name="Referencia")),
                ("evidence", models.FileField(blank=True, null=True, storage=core.storages.PrivateMediaStorage(), upload_to="fraccionamientos/comprobantes/", verbose_name="Comprobante")),
                ("notes", models.TextField(blank=True, verbose_name="Notas")),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("development", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="developments.accessdevelopment")),
                ("paid_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="collected_development_payments", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Mensualidad",
                "verbose_name_plural": "Mensualidades",
                "ordering": ["due_date"],
            },
        ),
        migrations.AddConstraint(
            model_name="developmentpayment",
            constraint=models.UniqueConstraint(fields=("development", "period"), name="unique_payment_period_per_development"),
        ),
        migrations.CreateModel(
            name="ScheduledServiceOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scheduled_date", models.DateField(verbose_name="Fecha programada")),
                ("status", models.CharField(choices=[("pending", "Pendiente"), ("generated", "Generada"), ("skipped", "Omitida"), ("cancelled", "Cancelada")], default="pending", max_length=20)),
                ("generated_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.CharField(blank=True, max_length=255, verbose_name="Notas")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("development", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="scheduled_orders", to="developments.accessdevelopment")),
                ("order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="scheduled_services", to="orders.order")),
            ],
            options={
                "verbose_name": "Orden programada",
                "verbose_name_plural": "Órdenes programadas",
                "ordering": ["scheduled_date"],
            },
        ),
        migrations.AddConstraint(
            model_name="scheduledserviceorder",
            constraint=models.UniqueConstraint(fields=("development", "scheduled_date"), name="unique_scheduled_order_per_development_date"),
        ),
        migrations.CreateModel(
            name="DevelopmentLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(choices=[("CREATED", "Creación"), ("UPDATED", "Actualización"), ("STATUS", "Cambio de estado"), ("SCHEDULE", "Cronograma"), ("PAYMENT", "Pago registrado"), ("ORDER", "Orden generada"), ("DOCUMENT", "Documento enviado"), ("NOTE", "Nota")], max_length=20)),
                ("message", models.CharField(blank=True, max_length=255)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="development_logs", to=settings.AUTH_USER_MODEL)),
                ("development", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="logs", to="developments.accessdevelopment")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="QuoteConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=60, unique=True, verbose_name="Clave")),
                ("value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Valor")),
                ("label", models.CharField(max_length=120, verbose_name="Etiqueta")),
                ("description", models.CharField(blank=True, max_length=255, verbose_name="Descripción")),
                ("display_order", models.PositiveIntegerField(default=0, verbose_name="Orden")),
            ],
            options={
                "verbose_name": "Precio del cotizador",
                "verbose_name_plural": "Precios del cotizador",
                "ordering": ["display_order", "key"],
            },
        ),
        migrations.RunPython(seed_quote_config, migrations.RunPython.noop),
    ]
