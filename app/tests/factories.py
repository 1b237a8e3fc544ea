from datetime import date
from decimal import Decimal
from itertools import count

from developments.models import (
    AccessDevelopment,
    DevelopmentLead,
    DevelopmentPayment,
    InvestorLoan,
)
from orders.models import Client
from users.models import RoleCode, User


class Factory:
    _seq = count(1)

    @classmethod
    def _n(cls):
        return next(cls._seq)

    @classmethod
    def user(cls, *, role=RoleCode.ADMIN, password="pass1234", **kwargs):
        n = cls._n()
        defaults = {
            "username": f"user{n}",
            "email": f"user{n}@example.com",
            "is_active": True,
            "role": role,
        }
        defaults.update(kwargs)
        return User.objects.create_user(password=password, **defaults)

    @classmethod
    def client(cls, **kwargs):
        n = cls._n()
        defaults = {
            "name": f"Cliente {n}",
            "phone": "5551234567",
            "email": f"cliente{n}@example.com",
        }
        defaults.update(kwargs)
        return Client.objects.create(**defaults)

    @classmethod
    def development(cls, **kwargs):
        """Contrato guardado tal cual, sin cronograma ni préstamo."""
        n = cls._n()
        defaults = {
            "name": f"Fraccionamiento {n}",
            "address": "Av. Principal 100",
            "contact_name": "Administración",
            "contact_email": f"admin{n}@example.com",
            "contract_start_date": date(2026, 1, 15),
            "contract_duration_months": 12,
            "monthly_payment": Decimal("10000.00"),
            "payment_day": 5,
            "service_day": 10,
        }
        defaults.update(kwargs)
        return AccessDevelopment.objects.create(**defaults)

    @classmethod
    def development_with_investor(cls, **kwargs):
        defaults = {
            "has_investor": True,
            "investor_name": "Inversiones del Norte",
            "investor_amount": Decimal("30000.00"),
            "investor_profit_percent": Decimal("20.00"),
            "investor_recovery_months": 3,
        }
        defaults.update(kwargs)
        return cls.development(**defaults)

    @classmethod
    def investor_loan(cls, *, development, **kwargs):
        n = cls._n()
        defaults = {
            "development": development,
            "loan_number": f"INV-2026-{n:05d}",
            "investor_name": development.investor_name or "Inversionista",
            "amount": development.investor_amount,
            "profit_percent": development.investor_profit_percent,
            "recovery_months": development.investor_recovery_months,
            "start_date": development.contract_start_date,
        }
        defaults.update(kwargs)
        return InvestorLoan.objects.create(**defaults)

    @classmethod
    def payment(cls, *, development, period=date(2026, 1, 1), **kwargs):
        defaults = {
            "development": development,
            "period": period,
            "due_date": period.replace(day=development.payment_day),
            "amount": development.monthly_payment,
            "company_portion": development.monthly_payment,
        }
        defaults.update(kwargs)
        return DevelopmentPayment.objects.create(**defaults)

    @classmethod
    def lead(cls, **kwargs):
        n = cls._n()
        defaults = {
            "name": f"Prospecto {n}",
            "contact_name": "Comité de vecinos",
            "contact_email": f"prospecto{n}@example.com",
            "monthly_payment_proposed": Decimal("8000.00"),
        }
        defaults.update(kwargs)
        return DevelopmentLead.objects.create(**defaults)
