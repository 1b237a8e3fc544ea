from decimal import Decimal

from django.db import models

from core.sequences import next_sequence_number


class PaymentMethod(models.TextChoices):
    EFECTIVO = "efectivo", "Efectivo"
    TRANSFERENCIA = "transferencia", "Transferencia"
    TARJETA = "tarjeta", "Tarjeta"
    TARJETA_DEBITO = "tarjeta_debito", "Tarjeta de débito"
    TARJETA_CREDITO = "tarjeta_credito", "Tarjeta de crédito"
    CHEQUE = "cheque", "Cheque"


class AccountType(models.TextChoices):
    FISCAL = "fiscal", "Fiscal"
    NO_FISCAL = "no_fiscal", "No fiscal"


# ---------------------------------------------------------------------------
# Ingresos
# ---------------------------------------------------------------------------

class Income(models.Model):
    class Category(models.TextChoices):
        SERVICIO = "servicio", "Servicio"
        VENTA = "venta", "Venta"
        OTRO = "otro", "Otro"

    class Status(models.TextChoices):
        COMPLETADO = "completado", "Completado"
        CANCELADO = "cancelado", "Cancelado"

    income_number = models.CharField("Número de ingreso", max_length=30, unique=True)
    amount = models.DecimalField("Monto", max_digits=14, decimal_places=2)
    description = models.CharField("Descripción", max_length=255)
    category = models.CharField(max_length=20, choices=Category.choices, default=Category.SERVICIO)
    payment_method = models.CharField(
        "Forma de pago", max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.EFECTIVO
    )
    income_date = models.DateField("Fecha del ingreso")
    account_type = models.CharField(
        "Cuenta", max_length=10, choices=AccountType.choices, default=AccountType.FISCAL
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.COMPLETADO)
    reference = models.CharField("Referencia", max_length=100, blank=True)
    development_payment = models.OneToOneField(
        "developments.DevelopmentPayment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="income",
    )
    created_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="registered_incomes",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-income_date", "-created_at"]
        verbose_name = "Ingreso"
        verbose_name_plural = "Ingresos"

    def __str__(self):
        return f"{self.income_number} - ${self.amount}"

    @staticmethod
    def next_number(day) -> str:
        return next_sequence_number(Income.objects.all(), "income_number", f"INC-{day:%Y%m}-", width=5)


# ---------------------------------------------------------------------------
# Cobranza pendiente (bandeja de cobros a gestionar)
# ---------------------------------------------------------------------------

class PendingCollectionQuerySet(models.QuerySet):
    def open(self):
        return self.filter(status=PendingCollection.Status.PENDING)

    def for_related(self, collection_type, related_id):
        return self.filter(collection_type=collection_type, related_id=related_id)


class PendingCollection(models.Model):
    class CollectionType(models.TextChoices):
        DEVELOPMENT_PAYMENT = "development_payment", "Pago de fraccionamiento"

    class Status(models.TextChoices):
        PENDING = "pending", "Pendiente"
        COLLECTED = "collected", "Cobrado"
        CANCELLED = "cancelled", "Cancelado"

    collection_type = models.CharField(max_length=30, choices=CollectionType.choices)
    related_id = models.UUIDField("Registro relacionado")
    client_name = models.CharField("Cliente", max_length=200)
    client_email = models.EmailField("Correo", blank=True)
    amount = models.DecimalField("Monto", max_digits=14, decimal_places=2, default=Decimal("0"))
    due_date = models.DateField("Fecha límite")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    notes = models.TextField("Notas", blank=True)
    collected_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = PendingCollectionQuerySet.as_manager()

    class Meta:
        ordering = ["due_date", "client_name"]
        verbose_name = "Cobranza pendiente"
        verbose_name_plural = "Cobranza pendiente"
        constraints = [
            models.UniqueConstraint(
                fields=["collection_type", "related_id"],
                name="unique_pending_collection_per_record",
            ),
        ]

    def __str__(self):
        return f"{self.client_name} - ${self.amount} ({self.due_date:%Y-%m-%d})"

    def is_overdue(self, today) -> bool:
        return self.status == self.Status.PENDING and self.due_date < today
