"""
Alta, edición y cambios de estado de contratos de fraccionamiento.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from dateutil.relativedelta import relativedelta

from orders.services import create_service_order, get_or_create_client
from developments.models import (
    AccessDevelopment,
    DevelopmentLog,
    DevelopmentPayment,
    InvestorLoan,
    ScheduledServiceOrder,
)
from .amortization import AmortizationPlanner
from .ledger import complete_loan, create_investor_loan, refresh_loan_status
from .schedule import sync_development_schedule

logger = logging.getLogger(__name__)


def _apply_investor_terms(development, planner):
    if not planner.has_investor:
        development.has_investor = False
        development.investor_recovery_months = 0
        development.investor_start_earning_date = None
        return
    development.investor_recovery_months = planner.recovery_months
    development.investor_start_earning_date = planner.earning_start_date(development.contract_start_date)


def month_index(development, period) -> int:
    """Posición (0..n) de un periodo dentro del contrato."""
    delta = relativedelta(period.replace(day=1), development.contract_start_date.replace(day=1))
    return delta.years * 12 + delta.months


@transaction.atomic
def create_development(development, *, user=None, today=None, lead=None):
    """
    Guarda un contrato nuevo junto con su cliente, el préstamo del
    inversionista, la orden de instalación y el cronograma completo.
    """
    today = today or timezone.localdate()
    planner = AmortizationPlanner.for_development(development)
    _apply_investor_terms(development, planner)

    client, _created = get_or_create_client(
        development.name,
        address=development.address,
        phone=development.contact_phone,
        email=development.contact_email,
    )
    development.client = client
    development.lead = lead or development.lead
    development.created_by = user
    development.save()

    if planner.has_investor:
        create_investor_loan(development, planner, today)

    lead_days = getattr(settings, "ACCESS_INSTALLATION_LEAD_DAYS", 25)
    development.installation_order = create_service_order(
        client=client,
        description=f"Instalación inicial - {development.name}",
        item_name="Instalación de Acceso",
        delivery_date=today + timedelta(days=lead_days),
        today=today,
        created_by=user,
        notes="Orden de instalación inicial",
    )
    development.save(update_fields=["installation_order"])

    result = sync_development_schedule(development, today)

    DevelopmentLog.objects.create(
        development=development,
        action=DevelopmentLog.Action.CREATED,
        message=f"Contrato creado: {development.contract_duration_months} meses de ${development.monthly_payment}.",
        metadata={
            "payments_created": result.payments_created,
            "orders_created": result.orders_created,
            "recovery_months": development.investor_recovery_months,
        },
        created_by=user,
    )
    logger.info("Fraccionamiento creado: %s (%s)", development.name, development.pk)
    return development


def resplit_open_payments(development, planner):
    """Recalcula monto y reparto de las mensualidades aún no cobradas."""
    updated = []
    for payment in development.payments.open():
        split = planner.split(month_index(development, payment.period))
        payment.amount = split.amount
        payment.investor_portion = split.investor_portion
        payment.company_portion = split.company_portion
        payment.is_recovery_period = split.is_recovery_period
        updated.append(payment)
    DevelopmentPayment.objects.bulk_update(
        updated, ["amount", "investor_portion", "company_portion", "is_recovery_period"]
    )
    return len(updated)


@transaction.atomic
def update_development(development, *, user=None, today=None):
    """
    Guarda cambios de un contrato existente. La fecha de inicio y los días de
    pago y servicio no cambian después del alta; mensualidad, duración e
    inversionista sí, y el cronograma se ajusta en consecuencia.
    """
    today = today or timezone.localdate()
    planner = AmortizationPlanner.for_development(development)
    _apply_investor_terms(development, planner)
    development.save()

    loan = InvestorLoan.objects.select_for_update().filter(development=development).first()
    if planner.has_investor and loan is None:
        create_investor_loan(development, planner, today)
    elif planner.has_investor:
        loan.investor_name = development.investor_name
        loan.amount = development.investor_amount
        loan.profit_percent = development.investor_profit_percent
        loan.recovery_months = planner.recovery_months
        loan.account_type = development.investor_account_type
        # Se reabre si se había cerrado al quitar el inversionista
        if loan.status == InvestorLoan.Status.COMPLETED and development.status != AccessDevelopment.Status.COMPLETED:
            loan.status = InvestorLoan.Status.ACTIVE
        refresh_loan_status(loan)
        loan.save()
    elif loan is not None and loan.status != InvestorLoan.Status.COMPLETED:
        complete_loan(loan)
        logger.info("Préstamo %s cerrado: el contrato %s ya no tiene inversionista", loan.loan_number, development.pk)

    resplit = resplit_open_payments(development, planner)
    result = sync_development_schedule(development, today)

    DevelopmentLog.objects.create(
        development=development,
        action=DevelopmentLog.Action.UPDATED,
        message="Contrato actualizado.",
        metadata={
            "payments_resplit": resplit,
            "payments_created": result.payments_created,
            "orders_created": result.orders_created,
        },
        created_by=user,
    )
    return development


@transaction.atomic
def change_status(development, new_status, *, user=None, today=None):
    """
    Completar un contrato cierra el préstamo del inversionista. Cancelarlo
    cancela las mensualidades y órdenes que aún no vencen.
    """
    today = today or timezone.localdate()
    if new_status not in AccessDevelopment.Status.values:
        raise ValueError(f"Estado no válido: {new_status}")

    previous = development.status
    development.status = new_status
    development.save(update_fields=["status", "updated_at"])

    if new_status == AccessDevelopment.Status.COMPLETED:
        loan = InvestorLoan.objects.filter(development=development).first()
        if loan:
            complete_loan(loan)
    elif new_status == AccessDevelopment.Status.CANCELLED:
        development.payments.open().filter(due_date__gte=today).update(
            status=DevelopmentPayment.Status.CANCELLED
        )
        development.scheduled_orders.filter(
            status=ScheduledServiceOrder.Status.PENDING, scheduled_date__gte=today
        ).update(status=ScheduledServiceOrder.Status.CANCELLED)

    DevelopmentLog.objects.create(
        development=development,
        action=DevelopmentLog.Action.STATUS,
        message=f"Estado: {AccessDevelopment.Status(previous).label} -> {development.get_status_display()}.",
        created_by=user,
    )
    logger.info("Fraccionamiento %s cambió a %s", development.name, new_status)
    return development
