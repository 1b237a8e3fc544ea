"""
Cronograma mensual de un contrato: una mensualidad y una orden de servicio
por cada mes de duración, ancladas al día de pago y al día de servicio.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from dateutil.relativedelta import relativedelta

from .amortization import AmortizationPlanner, InvalidFinancingTerms

logger = logging.getLogger(__name__)


def max_billing_day() -> int:
    return getattr(settings, "ACCESS_MAX_BILLING_DAY", 28)


def month_date(start: date, offset: int, day: int) -> date:
    """Fecha del mes ``start + offset`` con el día forzado a ``day``."""
    if not (1 <= day <= max_billing_day()):
        raise InvalidFinancingTerms(f"El día debe estar entre 1 y {max_billing_day()}.")
    return (start + relativedelta(months=offset)).replace(day=day)


@dataclass(frozen=True)
class PaymentDraft:
    index: int
    period: date
    due_date: date
    amount: Decimal
    investor_portion: Decimal
    company_portion: Decimal
    is_recovery_period: bool
    is_past: bool


@dataclass(frozen=True)
class OrderDraft:
    index: int
    scheduled_date: date
    is_past: bool


@dataclass(frozen=True)
class SyncResult:
    payments_created: int
    orders_created: int


class ScheduleGenerator:
    def __init__(self, planner: AmortizationPlanner, start_date: date, duration_months: int,
                 payment_day: int, service_day: int):
        if duration_months < 1:
            raise InvalidFinancingTerms("La duración del contrato debe ser de al menos un mes.")
        self.planner = planner
        self.start_date = start_date
        self.duration_months = duration_months
        self.payment_day = payment_day
        self.service_day = service_day

    @classmethod
    def for_development(cls, development):
        return cls(
            planner=AmortizationPlanner.for_development(development),
            start_date=development.contract_start_date,
            duration_months=development.contract_duration_months,
            payment_day=development.payment_day,
            service_day=development.service_day,
        )

    def payments(self, today: date) -> List[PaymentDraft]:
        drafts = []
        for split in self.planner.splits(self.duration_months):
            due = month_date(self.start_date, split.index, self.payment_day)
            drafts.append(PaymentDraft(
                index=split.index,
                period=due.replace(day=1),
                due_date=due,
                amount=split.amount,
                investor_portion=split.investor_portion,
                company_portion=split.company_portion,
                is_recovery_period=split.is_recovery_period,
                is_past=due < today,
            ))
        return drafts

    def orders(self, today: date) -> List[OrderDraft]:
        drafts = []
        for i in range(self.duration_months):
            scheduled = month_date(self.start_date, i, self.service_day)
            drafts.append(OrderDraft(index=i, scheduled_date=scheduled, is_past=scheduled < today))
        return drafts


@transaction.atomic
def sync_development_schedule(development, today: Optional[date] = None) -> SyncResult:
    """
    Crea las mensualidades y órdenes programadas que falten.
    Volver a ejecutarlo no duplica nada: (fraccionamiento, periodo) y
    (fraccionamiento, fecha programada) son únicos en base de datos.
    """
    from developments.models import DevelopmentPayment, ScheduledServiceOrder

    today = today or timezone.localdate()
    generator = ScheduleGenerator.for_development(development)

    existing_periods = set(development.payments.values_list("period", flat=True))
    new_payments = [
        DevelopmentPayment(
            development=development,
            period=draft.period,
            due_date=draft.due_date,
            amount=draft.amount,
            investor_portion=draft.investor_portion,
            company_portion=draft.company_portion,
            is_recovery_period=draft.is_recovery_period,
            status=DevelopmentPayment.Status.PENDING,
        )
        for draft in generator.payments(today)
        if draft.period not in existing_periods
    ]
    DevelopmentPayment.objects.bulk_create(new_payments, ignore_conflicts=True)

    existing_dates = set(development.scheduled_orders.values_list("scheduled_date", flat=True))
    new_orders = [
        ScheduledServiceOrder(
            development=development,
            scheduled_date=draft.scheduled_date,
            status=ScheduledServiceOrder.Status.PENDING,
        )
        for draft in generator.orders(today)
        if draft.scheduled_date not in existing_dates
    ]
    ScheduledServiceOrder.objects.bulk_create(new_orders, ignore_conflicts=True)

    if new_payments or new_orders:
        logger.info(
            "Cronograma de %s: %s mensualidades y %s órdenes nuevas",
            development.name, len(new_payments), len(new_orders),
        )
    return SyncResult(payments_created=len(new_payments), orders_created=len(new_orders))
