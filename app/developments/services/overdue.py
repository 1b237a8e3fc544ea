PENDING = "pending"
# Valor heredado: registros viejos guardaban "overdue" en lugar de calcularlo
LEGACY_OVERDUE = "overdue"


def is_payment_overdue(status, due_date, today) -> bool:
    """Un pago está vencido si sigue pendiente y su fecha límite ya pasó."""
    return status in (PENDING, LEGACY_OVERDUE) and due_date < today


def overdue_payments(payments, today):
    """Filtra un iterable de mensualidades dejando solo las vencidas a ``today``."""
    return [p for p in payments if is_payment_overdue(p.status, p.due_date, today)]
