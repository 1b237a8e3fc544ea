"""
Corrida diaria: genera las órdenes de servicio programadas que ya vencieron y
manda a cobranza pendiente las mensualidades exigibles.
"""
import logging
from dataclasses import dataclass, field, asdict
from typing import List

from django.db import transaction
from django.utils import timezone

from core.formatting import month_label
from finance.models import PendingCollection
from orders.services import create_service_order, get_or_create_client
from developments.models import (
    AccessDevelopment,
    DevelopmentLog,
    DevelopmentPayment,
    ScheduledServiceOrder,
)

logger = logging.getLogger(__name__)


@dataclass
class ProcessingResult:
    orders_processed: int = 0
    orders_skipped: int = 0
    payments_generated: int = 0
    errors: List[str] = field(default_factory=list)
    details: List[str] = field(default_factory=list)

    def as_dict(self):
        return asdict(self)


@transaction.atomic
def generate_scheduled_order(scheduled, today):
    """
    Genera la orden de una fecha programada. Devuelve None si otra corrida ya
    la tomó.
    """
    scheduled = (
        ScheduledServiceOrder.objects.select_for_update(of=("self",))
        .select_related("development", "development__client")
        .get(pk=scheduled.pk)
    )
    if scheduled.status != ScheduledServiceOrder.Status.PENDING:
        return None
    development = scheduled.development
    client = development.client
    if client is None:
        client, _created = get_or_create_client(
            development.name,
            address=development.address,
            phone=development.contact_phone,
            email=development.contact_email,
        )
        development.client = client
        development.save(update_fields=["client"])

    order = create_service_order(
        client=client,
        description=f"Servicio mensual de acceso - {development.name}",
        item_name="Servicio de Acceso Mensual",
        delivery_date=scheduled.scheduled_date,
        today=today,
        notes=f"Servicio programado {scheduled.scheduled_date:%d/%m/%Y}",
    )
    scheduled.order = order
    scheduled.status = ScheduledServiceOrder.Status.GENERATED
    scheduled.generated_at = timezone.now()
    scheduled.save(update_fields=["order", "status", "generated_at"])

    DevelopmentLog.objects.create(
        development=development,
        action=DevelopmentLog.Action.ORDER,
        message=f"Orden {order.number} generada.",
        metadata={"order": order.number, "scheduled_date": scheduled.scheduled_date.isoformat()},
    )
    return order


def queue_payment_collection(payment):
    """Alta en cobranza pendiente; devuelve False si la mensualidad ya estaba."""
    development = payment.development
    _collection, created = PendingCollection.objects.get_or_create(
        collection_type=PendingCollection.CollectionType.DEVELOPMENT_PAYMENT,
        related_id=payment.pk,
        defaults={
            "client_name": development.name,
            "client_email": development.contact_email,
            "amount": payment.amount,
            "due_date": payment.due_date,
            "notes": (
                f"Pago mensual fraccionamiento: {development.name} - "
                f"Período: {month_label(payment.period)}"
            ),
        },
    )
    return created


def process_access_orders(today=None) -> ProcessingResult:
    today = today or timezone.localdate()
    result = ProcessingResult()

    due_orders = (
        ScheduledServiceOrder.objects.filter(
            status=ScheduledServiceOrder.Status.PENDING,
            scheduled_date__lte=today,
        )
        .select_related("development", "development__client")
        .order_by("scheduled_date")
    )
    for scheduled in due_orders:
        development = scheduled.development
        if not development.is_active or not development.auto_generate_orders:
            result.orders_skipped += 1
            result.details.append(f"Omitida: {development.name} ({scheduled.scheduled_date})")
            continue
        try:
            order = generate_scheduled_order(scheduled, today)
        except Exception as exc:
            logger.exception("Error al generar la orden programada %s", scheduled.pk)
            result.errors.append(f"{development.name} ({scheduled.scheduled_date}): {exc}")
            continue
        if order is None:
            result.orders_skipped += 1
            result.details.append(f"Ya generada: {development.name} ({scheduled.scheduled_date})")
            continue
        result.orders_processed += 1
        result.details.append(f"Orden {order.number} generada para {development.name}")

    due_payments = (
        DevelopmentPayment.objects.due_by(today)
        .filter(development__status=AccessDevelopment.Status.ACTIVE)
        .select_related("development")
        .order_by("due_date")
    )
    for payment in due_payments:
        try:
            created = queue_payment_collection(payment)
        except Exception as exc:
            logger.exception("Error al registrar cobranza de la mensualidad %s", payment.pk)
            result.errors.append(f"{payment.development.name} ({payment.period}): {exc}")
            continue
        if created:
            result.payments_generated += 1
            result.details.append(
                f"Cobranza de {payment.development.name} - {month_label(payment.period)}"
            )

    logger.info(
        "Proceso de accesos %s: %s órdenes, %s omitidas, %s cobranzas, %s errores",
        today, result.orders_processed, result.orders_skipped,
        result.payments_generated, len(result.errors),
    )
    return result
