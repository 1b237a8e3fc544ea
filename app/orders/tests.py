from datetime import date
from decimal import Decimal

from django.urls import reverse

from orders.models import Client, Order, ServiceType
from orders.services import (
    ACCESS_SERVICE_TYPE_NAME,
    create_service_order,
    get_or_create_client,
    next_order_number,
)
from users.models import RoleCode
from tests.base import BaseAppTestCase
from tests.factories import Factory


class ClientLookupTests(BaseAppTestCase):
    def test_client_name_is_normalized_on_save(self):
        client = Factory.client(name="  Residencial   Los Álamos ")
        self.assertEqual(client.name, "Residencial Los Álamos")
        self.assertEqual(client.name_key, "residencial los alamos")

    def test_get_or_create_client_matches_ignoring_accents_and_case(self):
        existing = Factory.client(name="Residencial Los Álamos")
        client, created = get_or_create_client("RESIDENCIAL los alamos")
        self.assertFalse(created)
        self.assertEqual(client.pk, existing.pk)

    def test_get_or_create_client_normalizes_contact_data(self):
        client, created = get_or_create_client(
            "Villas del Sol",
            phone="(555) 123-4567",
            email="  Admin@Villas.MX ",
        )
        self.assertTrue(created)
        self.assertEqual(client.phone, "5551234567")
        self.assertEqual(client.email, "admin@villas.mx")
        self.assertEqual(client.address, "Sin dirección")


class ServiceOrderTests(BaseAppTestCase):
    def test_order_numbers_are_sequential_per_year(self):
        today = date(2026, 3, 10)
        client = Factory.client()
        first = create_service_order(
            client=client,
            description="Servicio",
            item_name="Servicio de Acceso Mensual",
            delivery_date=today,
            today=today,
        )
        second = create_service_order(
            client=client,
            description="Servicio",
            item_name="Servicio de Acceso Mensual",
            delivery_date=today,
            today=today,
        )
        self.assertEqual(first.number, "ORD-2026-000001")
        self.assertEqual(second.number, "ORD-2026-000002")
        self.assertEqual(next_order_number(date(2027, 1, 2)), "ORD-2027-000001")

    def test_service_order_has_single_locked_free_item(self):
        today = date(2026, 3, 10)
        order = create_service_order(
            client=Factory.client(),
            description="Instalación inicial - Villas",
            item_name="Instalación de Acceso",
            delivery_date=date(2026, 4, 4),
            today=today,
            notes="Orden de instalación inicial",
        )
        self.assertEqual(order.service_type.name, ACCESS_SERVICE_TYPE_NAME)
        self.assertEqual(order.estimated_cost, Decimal("0"))
        self.assertEqual(order.status, Order.Status.PENDIENTE)
        items = list(order.items.all())
        self.assertEqual(len(items), 1)
        self.assertTrue(items[0].pricing_locked)
        self.assertEqual(items[0].total, Decimal("0"))
        self.assertEqual(order.total, Decimal("0"))

    def test_access_service_type_is_reused(self):
        client = Factory.client()
        for _ in range(2):
            create_service_order(
                client=client,
                description="Servicio",
                item_name="Servicio",
                delivery_date=date(2026, 3, 10),
                today=date(2026, 3, 10),
            )
        self.assertEqual(ServiceType.objects.filter(name=ACCESS_SERVICE_TYPE_NAME).count(), 1)


class OrderViewTests(BaseAppTestCase):
    def setUp(self):
        self.login_with_permissions(RoleCode.TECNICO, ["orders:order_list", "orders:order_detail"])
        self.order = create_service_order(
            client=Factory.client(name="Villas del Sol"),
            description="Servicio mensual de acceso - Villas del Sol",
            item_name="Servicio de Acceso Mensual",
            delivery_date=date(2026, 3, 10),
            today=date(2026, 3, 1),
        )

    def test_order_list_filters_by_client_name(self):
        response = self.client.get(reverse("orders:order_list"), {"q": "villas"})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, self.order.number)

        response = self.client.get(reverse("orders:order_list"), {"q": "otro"})
        self.assertNotContains(response, self.order.number)

    def test_order_detail_renders_items(self):
        response = self.client.get(reverse("orders:order_detail", args=[self.order.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Servicio de Acceso Mensual")

    def test_client_list_requires_permission(self):
        response = self.client.get(reverse("orders:client_list"))
        self.assertEqual(response.status_code, 403)
        self.assertTrue(Client.objects.exists())
