import django.db.models.deletion
from decimal import Decimal

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


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("developments", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Income",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("income_number", models.CharField(max_length=30, unique=True, verbose_name="Número de ingreso")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="Monto")),
                ("description", models.CharField(max_length=255, verbose_name="Descripción")),
                ("category", models.CharField(choices=[("servicio", "Servicio"), ("venta", "Venta"), ("otro", "Otro")], default="servicio", max_length=20)),
                ("payment_method", models.CharField(choices=PAYMENT_METHOD_CHOICES, default="efectivo", max_length=20, verbose_name="Forma de pago")),
                ("income_date", models.DateField(verbose_name="Fecha del ingreso")),
                ("account_type", models.CharField(choices=ACCOUNT_TYPE_CHOICES, default="fiscal", max_length=10, verbose_name="Cuenta")),
                ("status", models.CharField(choices=[("completado", "Completado"), ("cancelado", "Cancelado")], default="completado", max_length=20)),
                ("reference", models.CharField(blank=True, max_length=100, verbose_name="Referencia")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="registered_incomes", to=settings.AUTH_USER_MODEL)),
                ("development_payment", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="income", to="developments.developmentpayment")),
            ],
            options={
                "verbose_name": "Ingreso",
                "verbose_name_plural": "Ingresos",
                "ordering": ["-income_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PendingCollection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("collection_type", models.CharField(choices=[("development_payment", "Pago de fraccionamiento")], max_length=30)),
                ("related_id", models.UUIDField(verbose_name="Registro relacionado")),
                ("client_name", models.CharField(max_length=200, verbose_name="Cliente")),
                ("client_email", models.EmailField(blank=True, max_length=254, verbose_name="Correo")),
                ("amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="Monto")),
                ("due_date", models.DateField(verbose_name="Fecha límite")),
                ("status", models.CharField(choices=[("pending", "Pendiente"), ("collected", "Cobrado"), ("cancelled", "Cancelado")], default="pending", max_length=20)),
                ("notes", models.TextField(blank=True, verbose_name="Notas")),
                ("collected_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Cobranza pendiente",
                "verbose_name_plural": "Cobranza pendiente",
                "ordering": ["due_date", "client_name"],
            },
        ),
        migrations.AddConstraint(
            model_name="pendingcollection",
            constraint=models.UniqueConstraint(fields=("collection_type", "related_id"), name="unique_pending_collection_per_record"),
        ),
    ]
