"""
Cotizador de control de acceso.

La mensualidad base suma el costo del sistema más cada elemento por su costo
unitario configurado; cada plan (18, 24 y 36 meses) aplica su descuento.
"""
import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from django.db import transaction

from developments.models import DevelopmentLead, QuoteConfig

CENT = Decimal("0.01")
REFERENCE_PLAN_MONTHS = 24

PLANS = (
    (18, "18 meses", "discount_18_months"),
    (24, "2 años", "discount_24_months"),
    (36, "3 años", "discount_36_months"),
)


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class QuoteInputs:
    vehicular_gates_single: int = 0
    vehicular_gates_double: int = 0
    pedestrian_doors: int = 0
    controlled_exits: int = 0
    num_houses: int = 0

    @classmethod
    def from_lead(cls, lead):
        return cls(
            vehicular_gates_single=lead.vehicular_gates_single,
            vehicular_gates_double=lead.vehicular_gates_double,
            pedestrian_doors=lead.pedestrian_doors,
            controlled_exits=lead.controlled_exits,
            num_houses=lead.num_houses,
        )


@dataclass
class QuotePlan:
    months: int
    label: str
    discount: Decimal
    monthly: Decimal
    per_house: Decimal


@dataclass
class QuoteBreakdown:
    system_base_cost: Decimal
    vehicular_single_total: Decimal
    vehicular_double_total: Decimal
    pedestrian_total: Decimal
    controlled_exit_total: Decimal
    houses_base_total: Decimal
    monthly_base: Decimal
    plans: List[QuotePlan] = field(default_factory=list)
    implementation_fee: Decimal = Decimal("0")
    recovery_payments: int = 0

    @property
    def reference_plan(self) -> QuotePlan:
        return next(p for p in self.plans if p.months == REFERENCE_PLAN_MONTHS)

    def as_json(self) -> dict:
        """Versión serializable para guardar en ``DevelopmentLead.quote_breakdown``."""
        return {
            "system_base_cost": float(self.system_base_cost),
            "vehicular_single_total": float(self.vehicular_single_total),
            "vehicular_double_total": float(self.vehicular_double_total),
            "pedestrian_total": float(self.pedestrian_total),
            "controlled_exit_total": float(self.controlled_exit_total),
            "houses_base_total": float(self.houses_base_total),
            "monthly_base": float(self.monthly_base),
            "plans": [
                {
                    "months": p.months,
                    "label": p.label,
                    "discount": float(p.discount),
                    "monthly": float(p.monthly),
                    "per_house": float(p.per_house),
                }
                for p in self.plans
            ],
            "implementation_fee": float(self.implementation_fee),
            "recovery_payments": self.recovery_payments,
        }


def calculate_quote(inputs: QuoteInputs, configs: Optional[dict] = None) -> Optional[QuoteBreakdown]:
    """Devuelve ``None`` si no hay precios configurados o no hay casas."""
    configs = QuoteConfig.as_dict() if configs is None else configs
    if not configs or inputs.num_houses <= 0:
        return None

    def cost(key):
        return Decimal(str(configs.get(key) or 0))

    system_base = cost("system_base_cost")
    single_total = inputs.vehicular_gates_single * cost("vehicular_gate_single_cost")
    double_total = inputs.vehicular_gates_double * cost("vehicular_gate_double_cost")
    pedestrian_total = inputs.pedestrian_doors * cost("pedestrian_door_cost")
    exit_total = inputs.controlled_exits * cost("controlled_exit_surcharge")
    houses_total = inputs.num_houses * cost("per_house_base_cost")
    monthly_base = system_base + single_total + double_total + pedestrian_total + exit_total + houses_total

    plans = []
    for months, label, discount_key in PLANS:
        discount = cost(discount_key)
        monthly = monthly_base * (1 - discount / 100)
        plans.append(QuotePlan(
            months=months,
            label=label,
            discount=discount,
            monthly=_money(monthly),
            per_house=_money(monthly / inputs.num_houses),
        ))

    breakdown = QuoteBreakdown(
        system_base_cost=system_base,
        vehicular_single_total=single_total,
        vehicular_double_total=double_total,
        pedestrian_total=pedestrian_total,
        controlled_exit_total=exit_total,
        houses_base_total=houses_total,
        monthly_base=monthly_base,
        plans=plans,
    )
    reference_monthly = breakdown.reference_plan.monthly
    fee_months = cost("implementation_fee_months") or Decimal("1")
    breakdown.implementation_fee = _money(reference_monthly * fee_months)
    breakdown.recovery_payments = (
        math.ceil(breakdown.implementation_fee / reference_monthly) if reference_monthly > 0 else 0
    )
    return breakdown


@transaction.atomic
def save_quote_as_lead(contact: dict, inputs: QuoteInputs, breakdown: QuoteBreakdown, *, lead=None, user=None):
    """
    Guarda la cotización como prospecto nuevo o actualiza el prospecto dado.
    La mensualidad propuesta es la del plan de 24 meses.
    """
    is_new = lead is None
    if is_new:
        lead = DevelopmentLead(status=DevelopmentLead.Status.NUEVO, created_by=user)

    lead.name = contact["name"]
    lead.address = contact.get("address", "")
    lead.contact_name = contact.get("contact_name", "")
    lead.contact_phone = contact.get("contact_phone", "")
    lead.contact_email = contact.get("contact_email", "")
    lead.monthly_payment_proposed = breakdown.reference_plan.monthly
    lead.vehicular_gates_single = inputs.vehicular_gates_single
    lead.vehicular_gates_double = inputs.vehicular_gates_double
    lead.pedestrian_doors = inputs.pedestrian_doors
    lead.controlled_exits = inputs.controlled_exits
    lead.num_houses = inputs.num_houses
    lead.contract_months = REFERENCE_PLAN_MONTHS
    lead.quote_breakdown = breakdown.as_json()
    lead.touch("Cotización creada" if is_new else "Cotización actualizada")
    lead.save()
    return lead
