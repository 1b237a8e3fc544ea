"""
Reparto de la mensualidad de un fraccionamiento entre inversionista y empresa.

Mientras el inversionista no recupera su capital recibe la mensualidad completa
(periodo de recuperación); después recibe solo su porcentaje de ganancia y el
resto queda para la empresa.
"""
import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List

from dateutil.relativedelta import relativedelta

CENT = Decimal("0.01")


class InvalidFinancingTerms(ValueError):
    pass


def _finite(value) -> Decimal:
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise InvalidFinancingTerms(f"Monto no numérico: {value!r}")
    if not number.is_finite():
        raise InvalidFinancingTerms(f"Monto no válido: {value!r}")
    return number


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def recovery_months(investor_amount, monthly_payment) -> int:
    """Meses necesarios para devolver el capital: ceil(inversión / mensualidad)."""
    monthly = Decimal(str(monthly_payment))
    if monthly <= 0:
        raise InvalidFinancingTerms("La mensualidad debe ser mayor a cero para calcular la recuperación.")
    amount = Decimal(str(investor_amount or 0))
    if amount <= 0:
        return 0
    return math.ceil(amount / monthly)


@dataclass(frozen=True)
class PaymentSplit:
    index: int
    amount: Decimal
    investor_portion: Decimal
    company_portion: Decimal
    is_recovery_period: bool


class AmortizationPlanner:
    def __init__(self, monthly_payment, investor_amount=0, profit_percent=0, has_investor=True):
        self.monthly_payment = _money(_finite(monthly_payment))
        if self.monthly_payment <= 0:
            raise InvalidFinancingTerms("La mensualidad debe ser mayor a cero.")

        self.investor_amount = _money(_finite(investor_amount or 0))
        self.profit_percent = _finite(profit_percent or 0)
        if self.investor_amount < 0:
            raise InvalidFinancingTerms("El monto de inversión no puede ser negativo.")
        if not (0 <= self.profit_percent <= 100):
            raise InvalidFinancingTerms("El porcentaje de ganancia debe estar entre 0 y 100.")

        self.has_investor = bool(has_investor) and self.investor_amount > 0
        self.recovery_months = (
            recovery_months(self.investor_amount, self.monthly_payment) if self.has_investor else 0
        )

    @property
    def investor_monthly_profit(self) -> Decimal:
        if not self.has_investor:
            return Decimal("0.00")
        return _money(self.monthly_payment * self.profit_percent / 100)

    def split(self, index: int) -> PaymentSplit:
        if index < 0:
            raise ValueError("El índice del mes no puede ser negativo.")
        is_recovery = index < self.recovery_months
        if not self.has_investor:
            investor = Decimal("0.00")
        elif is_recovery:
            investor = self.monthly_payment
        else:
            investor = self.investor_monthly_profit
        return PaymentSplit(
            index=index,
            amount=self.monthly_payment,
            investor_portion=investor,
            company_portion=self.monthly_payment - investor,
            is_recovery_period=is_recovery,
        )

    def splits(self, months: int) -> List[PaymentSplit]:
        return [self.split(i) for i in range(months)]

    def earning_start_date(self, start: date):
        """Primer mes en que el inversionista cobra solo su ganancia."""
        if not self.has_investor:
            return None
        return start + relativedelta(months=self.recovery_months)

    @classmethod
    def for_development(cls, development):
        return cls(
            monthly_payment=development.monthly_payment,
            investor_amount=development.investor_amount,
            profit_percent=development.investor_profit_percent,
            has_investor=development.has_investor,
        )
