import uuid
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from core.storages import PrivateMediaStorage
from finance.models import AccountType, PaymentMethod
from .services.overdue import is_payment_overdue

BILLING_DAY_VALIDATORS = [MinValueValidator(1), MaxValueValidator(28)]


# ---------------------------------------------------------------------------
# Prospectos (embudo comercial previo al contrato)
# ---------------------------------------------------------------------------

class DevelopmentLeadQuerySet(models.QuerySet):
    def open(self):
        return self.exclude(status__in=DevelopmentLead.CLOSED_STATUSES)

    def reminders_due(self, today):
        return self.open().filter(reminder_date__isnull=False, reminder_date__lte=today)


class DevelopmentLead(models.Model):
    class Status(models.TextChoices):
        NUEVO = "nuevo", "Nuevo"
        CONTACTADO = "contactado", "Contactado"
        NEGOCIANDO = "negociando", "Negociando"
        PROPUESTA_ENVIADA = "propuesta_enviada", "Propuesta enviada"
        ACEPTADO = "aceptado", "Aceptado"
        RECHAZADO = "rechazado", "Rechazado"
        PAUSADO = "pausado", "Pausado"

    CLOSED_STATUSES = (Status.ACEPTADO, Status.RECHAZADO)

    name = models.CharField("Fraccionamiento", max_length=200)
    address = models.CharField("Dirección", max_length=255, blank=True)
    contact_name = models.CharField("Contacto", max_length=150, blank=True)
    contact_phone = models.CharField("Teléfono", max_length=20, blank=True)
    contact_email = models.EmailField("Correo", blank=True)
    monthly_payment_proposed = models.DecimalField(
        "Mensualidad propuesta", max_digits=14, decimal_places=2, null=True, blank=True
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.NUEVO)
    last_activity_at = models.DateTimeField("Última actividad", null=True, blank=True)
    last_activity_description = models.CharField("Descripción de actividad", max_length=255, blank=True)
    comments = models.TextField("Comentario más reciente", blank=True)
    reminder_date = models.DateField("Recordatorio", null=True, blank=True)

    has_investor = models.BooleanField("Con inversionista", default=False)
    investor_name = models.CharField("Inversionista", max_length=150, blank=True)
    investor_amount = models.DecimalField(
        "Monto de inversión", max_digits=14, decimal_places=2, null=True, blank=True
    )

    # Datos de cotización
    vehicular_gates_single = models.PositiveIntegerField("Portones vehiculares sencillos", default=0)
    vehicular_gates_double = models.PositiveIntegerField("Portones vehiculares dobles", default=0)
    pedestrian_doors = models.PositiveIntegerField("Puertas peatonales", default=0)
    controlled_exits = models.PositiveIntegerField("Salidas controladas", default=0)
    num_houses = models.PositiveIntegerField("Número de casas", default=0)
    contract_months = models.PositiveIntegerField("Meses de contrato", null=True, blank=True)
    quote_breakdown = models.JSONField("Desglose de cotización", default=dict, blank=True)

    created_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_development_leads",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = DevelopmentLeadQuerySet.as_manager()

    class Meta:
        ordering = ["-updated_at"]
        verbose_name = "Prospecto de fraccionamiento"
        verbose_name_plural = "Prospectos de fraccionamiento"

    def __str__(self):
        return self.name

    @property
    def can_convert(self):
        return self.status not in self.CLOSED_STATUSES

    def is_reminder_due(self, today) -> bool:
        return bool(self.reminder_date) and self.reminder_date <= today and self.can_convert

    def touch(self, description, when=None):
        self.last_activity_at = when or timezone.now()
        self.last_activity_description = description


class LeadComment(models.Model):
    lead = models.ForeignKey(DevelopmentLead, on_delete=models.CASCADE, related_name="comment_history")
    comment = models.TextField("Comentario")
    created_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="development_lead_comments",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.lead} - {self.created_at:%Y-%m-%d}"


# ---------------------------------------------------------------------------
# Contrato de fraccionamiento
# ---------------------------------------------------------------------------

class AccessDevelopment(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Activo"
        SUSPENDED = "suspended", "Suspendido"
        CANCELLED = "cancelled", "Cancelado"
        COMPLETED = "completed", "Completado"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField("Nombre del fraccionamiento", max_length=200)
    address = models.CharField("Dirección", max_length=255, blank=True)
    contact_name = models.CharField("Contacto", max_length=150, blank=True)
    contact_phone = models.CharField("Teléfono", max_length=20, blank=True)
    contact_email = models.EmailField("Correo", blank=True)
    client = models.ForeignKey(
        "orders.Client",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="developments",
    )
    lead = models.ForeignKey(
        DevelopmentLead,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="developments",
    )
    installation_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="installed_developments",
    )

    contract_start_date = models.DateField("Inicio de contrato")
    contract_duration_months = models.PositiveIntegerField(
        "Duración (meses)", validators=[MinValueValidator(1)]
    )
    monthly_payment = models.DecimalField("Mensualidad", max_digits=14, decimal_places=2)
    payment_day = models.PositiveSmallIntegerField("Día de pago", default=1, validators=BILLING_DAY_VALIDATORS)
    service_day = models.PositiveSmallIntegerField("Día de servicio", default=1, validators=BILLING_DAY_VALIDATORS)
    auto_generate_orders = models.BooleanField("Generar órdenes automáticamente", default=True)

    has_investor = models.BooleanField("Con inversionista", default=False)
    investor_name = models.CharField("Inversionista", max_length=150, blank=True)
    investor_amount = models.DecimalField(
        "Monto de inversión", max_digits=14, decimal_places=2, default=Decimal("0")
    )
    investor_profit_percent = models.DecimalField(
        "Ganancia del inversionista (%)", max_digits=5, decimal_places=2, default=Decimal("0")
    )
    investor_recovery_months = models.PositiveIntegerField("Meses de recuperación", default=0)
    investor_start_earning_date = models.DateField("Inicio de ganancias", null=True, blank=True)
    investor_account_type = models.CharField(
        "Cuenta de la inversión", max_length=10, choices=AccountType.choices, default=AccountType.FISCAL
    )

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    notes = models.TextField("Notas", blank=True)
    created_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_developments",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Fraccionamiento"
        verbose_name_plural = "Fraccionamientos"

    def __str__(self):
        return self.name

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE

    @property
    def contract_value(self):
        return self.monthly_payment * self.contract_duration_months

    @property
    def investor_loan_or_none(self):
        return getattr(self, "investor_loan", None) if self.has_investor else None


class InvestorLoan(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Recuperando"
        RECOVERED = "recovered", "Capital recuperado"
        EARNING = "earning", "Generando ganancias"
        COMPLETED = "completed", "Completado"

    development = models.OneToOneField(
        AccessDevelopment, on_delete=models.CASCADE, related_name="investor_loan"
    )
    loan_number = models.CharField("Número de préstamo", max_length=30, unique=True)
    investor_name = models.CharField("Inversionista", max_length=150)
    amount = models.DecimalField("Capital invertido", max_digits=14, decimal_places=2)
    profit_percent = models.DecimalField("Ganancia (%)", max_digits=5, decimal_places=2, default=Decimal("0"))
    recovery_months = models.PositiveIntegerField("Meses de recuperación", default=0)
    amount_recovered = models.DecimalField("Capital recuperado", max_digits=14, decimal_places=2, default=Decimal("0"))
    amount_earned = models.DecimalField("Ganancia acumulada", max_digits=14, decimal_places=2, default=Decimal("0"))
    account_type = models.CharField(max_length=10, choices=AccountType.choices, default=AccountType.FISCAL)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    start_date = models.DateField("Inicio")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Préstamo de inversionista"
        verbose_name_plural = "Préstamos de inversionistas"

    def __str__(self):
        return f"{self.loan_number} - {self.investor_name}"

    @property
    def pending_amount(self):
        return max(Decimal("0"), self.amount - self.amount_recovered)


# ---------------------------------------------------------------------------
# Cronograma: mensualidades y órdenes de servicio programadas
# ---------------------------------------------------------------------------

class DevelopmentPaymentQuerySet(models.QuerySet):
    def open(self):
        return self.filter(status__in=DevelopmentPayment.OPEN_STATUSES)

    def overdue(self, today):
        return self.open().filter(due_date__lt=today)

    def due_by(self, today):
        return self.open().filter(due_date__lte=today)


class DevelopmentPayment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pendiente"
        PAID = "paid", "Pagado"
        OVERDUE = "overdue", "Vencido"
        CANCELLED = "cancelled", "Cancelado"

    # "overdue" solo existe en registros heredados; hoy se calcula al leer
    OPEN_STATUSES = (Status.PENDING, Status.OVERDUE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    development = models.ForeignKey(AccessDevelopment, on_delete=models.CASCADE, related_name="payments")
    period = models.DateField("Periodo")
    due_date = models.DateField("Fecha límite")
    amount = models.DecimalField("Monto", max_digits=14, decimal_places=2)
    investor_portion = models.DecimalField("Parte inversionista", max_digits=14, decimal_places=2, default=Decimal("0"))
    company_portion = models.DecimalField("Parte empresa", max_digits=14, decimal_places=2, default=Decimal("0"))
    is_recovery_period = models.BooleanField("Periodo de recuperación", default=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    paid_at = models.DateTimeField("Fecha de pago", null=True, blank=True)
    paid_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="collected_development_payments",
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, blank=True)
    payment_reference = models.CharField("Referencia", max_length=100, blank=True)
    evidence = models.FileField(
        "Comprobante",
        upload_to="fraccionamientos/comprobantes/",
        storage=PrivateMediaStorage(),
        null=True,
        blank=True,
    )
    notes = models.TextField("Notas", blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    objects = DevelopmentPaymentQuerySet.as_manager()

    class Meta:
        ordering = ["due_date"]
        verbose_name = "Mensualidad"
        verbose_name_plural = "Mensualidades"
        constraints = [
            models.UniqueConstraint(
                fields=["development", "period"],
                name="unique_payment_period_per_development",
            ),
        ]

    def __str__(self):
        return f"{self.development} - {self.period:%Y-%m}"

    @property
    def is_paid(self):
        return self.status == self.Status.PAID

    def is_overdue(self, today) -> bool:
        return is_payment_overdue(self.status, self.due_date, today)

    def display_status(self, today) -> str:
        if self.is_overdue(today):
            return self.Status.OVERDUE.label
        if self.status == self.Status.OVERDUE:
            return self.Status.PENDING.label
        return self.get_status_display()

    def is_retroactive(self) -> bool:
        """Registrada después de su fecha límite (contratos capturados con fecha pasada)."""
        return timezone.localdate(self.created_at) > self.due_date


class ScheduledServiceOrder(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pendiente"
        GENERATED = "generated", "Generada"
        SKIPPED = "skipped", "Omitida"
        CANCELLED = "cancelled", "Cancelada"

    development = models.ForeignKey(
        AccessDevelopment, on_delete=models.CASCADE, related_name="scheduled_orders"
    )
    scheduled_date = models.DateField("Fecha programada")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="scheduled_services",
    )
    generated_at = models.DateTimeField(null=True, blank=True)
    notes = models.CharField("Notas", max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["scheduled_date"]
        verbose_name = "Orden programada"
        verbose_name_plural = "Órdenes programadas"
        constraints = [
            models.UniqueConstraint(
                fields=["development", "scheduled_date"],
                name="unique_scheduled_order_per_development_date",
            ),
        ]

    def __str__(self):
        return f"{self.development} - {self.scheduled_date:%Y-%m-%d}"


# ---------------------------------------------------------------------------
# Bitácora del contrato
# ---------------------------------------------------------------------------

class DevelopmentLog(models.Model):
    class Action(models.TextChoices):
        CREATED = "CREATED", "Creación"
        UPDATED = "UPDATED", "Actualización"
        STATUS = "STATUS", "Cambio de estado"
        SCHEDULE = "SCHEDULE", "Cronograma"
        PAYMENT = "PAYMENT", "Pago registrado"
        ORDER = "ORDER", "Orden generada"
        DOCUMENT = "DOCUMENT", "Documento enviado"
        NOTE = "NOTE", "Nota"

    development = models.ForeignKey(AccessDevelopment, on_delete=models.CASCADE, related_name="logs")
    action = models.CharField(max_length=20, choices=Action.choices)
    message = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="development_logs",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.development} - {self.get_action_display()}"


# ---------------------------------------------------------------------------
# Precios del cotizador
# ---------------------------------------------------------------------------

class QuoteConfig(models.Model):
    key = models.CharField("Clave", max_length=60, unique=True)
    value = models.DecimalField("Valor", max_digits=14, decimal_places=2, default=Decimal("0"))
    label = models.CharField("Etiqueta", max_length=120)
    description = models.CharField("Descripción", max_length=255, blank=True)
    display_order = models.PositiveIntegerField("Orden", default=0)

    class Meta:
        ordering = ["display_order", "key"]
        verbose_name = "Precio del cotizador"
        verbose_name_plural = "Precios del cotizador"

    def __str__(self):
        return self.label

    @property
    def is_percentage(self):
        return self.key.startswith("discount_")

    @classmethod
    def as_dict(cls):
        return {c.key: c.value for c in cls.objects.all()}
