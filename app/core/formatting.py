from decimal import Decimal, ROUND_HALF_UP

MONTH_NAMES = (
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
)


def month_label(value) -> str:
    """date(2026, 3, 1) -> 'Marzo 2026'."""
    return f"{MONTH_NAMES[value.month - 1]} {value.year}"


def format_money(value) -> str:
    """Formato de moneda MXN: $1,234.50"""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
