"""
Cobro de mensualidades y control del préstamo del inversionista.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone

from core.formatting import month_label
from core.sequences import next_sequence_number
from finance.models import AccountType, Income, PaymentMethod, PendingCollection
from developments.models import (
    DevelopmentLog,
    DevelopmentPayment,
    InvestorLoan,
)

logger = logging.getLogger(__name__)


class PaymentNotCollectible(Exception):
    pass


def next_loan_number(today) -> str:
    return next_sequence_number(InvestorLoan.objects.all(), "loan_number", f"INV-{today.year}-", width=5)


def create_investor_loan(development, planner, today):
    return InvestorLoan.objects.create(
        development=development,
        loan_number=next_loan_number(today),
        investor_name=development.investor_name,
        amount=development.investor_amount,
        profit_percent=development.investor_profit_percent,
        recovery_months=planner.recovery_months,
        account_type=development.investor_account_type,
        start_date=development.contract_start_date,
    )


def refresh_loan_status(loan):
    """Recalcula el estado según lo recuperado. Un préstamo completado no cambia."""
    if loan.status == InvestorLoan.Status.COMPLETED:
        return loan
    if loan.amount_recovered >= loan.amount:
        loan.status = (
            InvestorLoan.Status.EARNING if loan.amount_earned > 0 else InvestorLoan.Status.RECOVERED
        )
    else:
        loan.status = InvestorLoan.Status.ACTIVE
    return loan


def apply_collected_payment(loan, payment):
    """
    Abona la parte del inversionista de una mensualidad cobrada.
    En recuperación suma al capital recuperado; después suma a la ganancia.
    """
    portion = payment.investor_portion or Decimal("0")
    if payment.is_recovery_period:
        loan.amount_recovered += portion
    else:
        loan.amount_earned += portion

    refresh_loan_status(loan)
    loan.save(update_fields=["amount_recovered", "amount_earned", "status", "updated_at"])
    return loan


def complete_loan(loan):
    loan.status = InvestorLoan.Status.COMPLETED
    loan.save(update_fields=["status", "updated_at"])
    return loan


def loan_progress(loan) -> Decimal:
    """Porcentaje del capital recuperado (tope 100)."""
    if loan.amount <= 0:
        return Decimal("100.00")
    pct = loan.amount_recovered / loan.amount * 100
    return min(Decimal("100"), pct).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def investor_totals(loans) -> dict:
    totals = {
        "invested": Decimal("0"),
        "recovered": Decimal("0"),
        "earned": Decimal("0"),
        "pending": Decimal("0"),
    }
    for loan in loans:
        totals["invested"] += loan.amount
        totals["recovered"] += loan.amount_recovered
        totals["earned"] += loan.amount_earned
        totals["pending"] += loan.pending_amount
    return totals


@transaction.atomic
def register_payment(payment, *, method, reference="", user=None, paid_at=None, evidence=None):
    """
    Marca una mensualidad como pagada, registra el ingreso, cierra la cobranza
    pendiente y abona al préstamo del inversionista.
    """
    payment = (
        DevelopmentPayment.objects.select_for_update()
        .select_related("development")
        .get(pk=payment.pk)
    )
    if payment.status == DevelopmentPayment.Status.PAID:
        raise PaymentNotCollectible("Esta mensualidad ya fue pagada.")
    if payment.status == DevelopmentPayment.Status.CANCELLED:
        raise PaymentNotCollectible("No se puede cobrar una mensualidad cancelada.")
    if method not in PaymentMethod.values:
        raise PaymentNotCollectible("Forma de pago no válida.")

    development = payment.development
    paid_at = paid_at or timezone.now()

    payment.status = DevelopmentPayment.Status.PAID
    payment.paid_at = paid_at
    payment.paid_by = user
    payment.payment_method = method
    payment.payment_reference = reference or ""
    if evidence:
        payment.evidence = evidence
    payment.save()

    paid_day = timezone.localdate(paid_at)
    income = Income.objects.create(
        income_number=Income.next_number(paid_day),
        amount=payment.amount,
        description=f"Pago mensual - {development.name} ({month_label(payment.period)})",
        category=Income.Category.SERVICIO,
        payment_method=method,
        income_date=paid_day,
        account_type=AccountType.FISCAL,
        status=Income.Status.COMPLETADO,
        reference=payment.payment_reference,
        development_payment=payment,
        created_by=user,
    )

    PendingCollection.objects.for_related(
        PendingCollection.CollectionType.DEVELOPMENT_PAYMENT, payment.pk
    ).update(status=PendingCollection.Status.COLLECTED, collected_at=paid_at)

    if development.has_investor:
        loan = InvestorLoan.objects.select_for_update().filter(development=development).first()
        if loan:
            apply_collected_payment(loan, payment)

    DevelopmentLog.objects.create(
        development=development,
        action=DevelopmentLog.Action.PAYMENT,
        message=f"Pago de {month_label(payment.period)} registrado ({income.income_number}).",
        metadata={"payment_id": str(payment.pk), "amount": str(payment.amount), "method": method},
        created_by=user,
    )
    logger.info(
        "Pago registrado: %s %s por %s (%s)",
        development.name, payment.period, payment.amount, income.income_number,
    )
    return income
