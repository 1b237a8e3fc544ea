from decimal import Decimal

from django.db import models

from core.normalization import name_lookup_key, normalize_display_name


class ClientQuerySet(models.QuerySet):
    def find_by_name(self, name):
        return self.filter(name_key=name_lookup_key(name)).order_by("id").first()


class Client(models.Model):
    name = models.CharField("Nombre", max_length=200)
    name_key = models.CharField(max_length=200, db_index=True, editable=False)
    address = models.CharField("Dirección", max_length=255, default="Sin dirección")
    phone = models.CharField("Teléfono", max_length=20, blank=True)
    email = models.EmailField("Correo", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ClientQuerySet.as_manager()

    class Meta:
        ordering = ["name"]
        verbose_name = "Cliente"
        verbose_name_plural = "Clientes"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.name = normalize_display_name(self.name)
        self.name_key = name_lookup_key(self.name)
        super().save(*args, **kwargs)


class ServiceType(models.Model):
    name = models.CharField("Nombre", max_length=120, unique=True)
    is_active = models.BooleanField("Activo", default=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Tipo de servicio"
        verbose_name_plural = "Tipos de servicio"

    def __str__(self):
        return self.name


class Order(models.Model):
    class Status(models.TextChoices):
        PENDIENTE = "pendiente", "Pendiente"
        EN_PROCESO = "en_proceso", "En proceso"
        TERMINADA = "terminada", "Terminada"
        CANCELADA = "cancelada", "Cancelada"

    number = models.CharField("Número de orden", max_length=30, unique=True)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="orders")
    service_type = models.ForeignKey(
        ServiceType,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    description = models.TextField("Descripción")
    estimated_cost = models.DecimalField("Costo estimado", max_digits=14, decimal_places=2, default=Decimal("0"))
    delivery_date = models.DateField("Fecha de entrega")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDIENTE)
    notes = models.TextField("Notas", blank=True)
    created_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_orders",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Orden de servicio"
        verbose_name_plural = "Órdenes de servicio"

    def __str__(self):
        return self.number

    @property
    def total(self):
        return sum((item.total for item in self.items.all()), Decimal("0"))


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    service_type = models.ForeignKey(ServiceType, on_delete=models.PROTECT, null=True, blank=True)
    name = models.CharField("Servicio", max_length=200)
    description = models.TextField("Descripción", blank=True)
    quantity = models.PositiveIntegerField("Cantidad", default=1)
    unit_price = models.DecimalField("Precio unitario", max_digits=14, decimal_places=2, default=Decimal("0"))
    total = models.DecimalField("Total", max_digits=14, decimal_places=2, default=Decimal("0"))
    # Partidas de contrato: el precio no se recalcula desde el catálogo
    pricing_locked = models.BooleanField("Precio bloqueado", default=False)

    class Meta:
        verbose_name = "Partida de orden"
        verbose_name_plural = "Partidas de orden"

    def __str__(self):
        return f"{self.order.number} - {self.name}"

    def save(self, *args, **kwargs):
        self.total = (self.unit_price or Decimal("0")) * self.quantity
        super().save(*args, **kwargs)
