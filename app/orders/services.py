import logging
from decimal import Decimal

from django.db import transaction

from core.normalization import normalize_email, normalize_phone
from core.sequences import next_sequence_number
from .models import Client, Order, OrderItem, ServiceType

logger = logging.getLogger(__name__)

ACCESS_SERVICE_TYPE_NAME = "Control de Acceso"


def next_order_number(today) -> str:
    """Consecutivo anual ORD-YYYY-NNNNNN."""
    return next_sequence_number(Order.objects.all(), "number", f"ORD-{today.year}-")


def get_or_create_client(name, *, address="", phone="", email=""):
    client = Client.objects.find_by_name(name)
    if client:
        return client, False
    client = Client.objects.create(
        name=name,
        address=address or "Sin dirección",
        phone=normalize_phone(phone),
        email=normalize_email(email),
    )
    logger.info("Cliente creado: %s", client.name)
    return client, True


def access_service_type():
    service_type, _created = ServiceType.objects.get_or_create(name=ACCESS_SERVICE_TYPE_NAME)
    return service_type


@transaction.atomic
def create_service_order(
    *,
    client,
    description,
    item_name,
    delivery_date,
    today,
    created_by=None,
    notes="",
):
    """Crea una orden sin costo con una sola partida de precio bloqueado."""
    service_type = access_service_type()
    order = Order.objects.create(
        number=next_order_number(today),
        client=client,
        service_type=service_type,
        description=description,
        estimated_cost=Decimal("0"),
        delivery_date=delivery_date,
        notes=notes,
        created_by=created_by,
    )
    OrderItem.objects.create(
        order=order,
        service_type=service_type,
        name=item_name,
        description=description,
        quantity=1,
        unit_price=Decimal("0"),
        pricing_locked=True,
    )
    return order
