import json
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from core.formatting import format_money, month_label
from developments.models import (
    AccessDevelopment,
    DevelopmentLead,
    DevelopmentLog,
    DevelopmentPayment,
    InvestorLoan,
    LeadComment,
    QuoteConfig,
    ScheduledServiceOrder,
)
from developments.services.amortization import (
    AmortizationPlanner,
    InvalidFinancingTerms,
    recovery_months,
)
from developments.services.contracts import change_status, create_development, update_development
from developments.services.documents import (
    NOTICE,
    RECEIPT,
    MissingContactEmail,
    build_document_context,
    notice_number,
    receipt_number,
    send_payment_document,
)
from developments.services.leads import (
    LeadNotConvertible,
    add_comment,
    convert_lead,
    development_initial_from_lead,
    save_lead,
)
from developments.services.ledger import register_payment
from developments.services.overdue import is_payment_overdue, overdue_payments
from developments.services.processing import generate_scheduled_order, process_access_orders
from developments.services.quotes import QuoteInputs, calculate_quote, save_quote_as_lead
from developments.services.schedule import ScheduleGenerator, month_date, sync_development_schedule
from developments.views import is_visible_in_collections
from finance.models import PaymentMethod, PendingCollection
from orders.models import Client, Order
from users.models import RoleCode
from tests.base import BaseAppTestCase
from tests.factories import Factory

QUOTE_PRICES = {
    "system_base_cost": Decimal("3500"),
    "vehicular_gate_single_cost": Decimal("1200"),
    "vehicular_gate_double_cost": Decimal("1800"),
    "pedestrian_door_cost": Decimal("600"),
    "controlled_exit_surcharge": Decimal("800"),
    "per_house_base_cost": Decimal("35"),
    "discount_18_months": Decimal("0"),
    "discount_24_months": Decimal("5"),
    "discount_36_months": Decimal("10"),
    "implementation_fee_months": Decimal("1"),
}


def _aware(*args):
    return timezone.make_aware(datetime(*args))


def _fake_pdf(mock_html):
    mock_html.return_value.write_pdf.side_effect = lambda target: target.write(b"%PDF-1.4 prueba")


# ---------------------------------------------------------------------------
# Cálculos puros
# ---------------------------------------------------------------------------

class AmortizationTests(SimpleTestCase):
    def test_recovery_months_rounds_up(self):
        self.assertEqual(recovery_months(Decimal("30000"), Decimal("10000")), 3)
        self.assertEqual(recovery_months(Decimal("25000"), Decimal("10000")), 3)
        self.assertEqual(recovery_months(0, Decimal("10000")), 0)

    def test_recovery_months_requires_positive_payment(self):
        with self.assertRaises(InvalidFinancingTerms):
            recovery_months(Decimal("30000"), 0)

    def test_split_during_and_after_recovery(self):
        planner = AmortizationPlanner(Decimal("10000"), Decimal("30000"), Decimal("20"))
        self.assertEqual(planner.recovery_months, 3)

        recovery = planner.split(2)
        self.assertTrue(recovery.is_recovery_period)
        self.assertEqual(recovery.investor_portion, Decimal("10000.00"))
        self.assertEqual(recovery.company_portion, Decimal("0.00"))

        earning = planner.split(3)
        self.assertFalse(earning.is_recovery_period)
        self.assertEqual(earning.investor_portion, Decimal("2000.00"))
        self.assertEqual(earning.company_portion, Decimal("8000.00"))

    def test_portions_always_add_up_to_payment(self):
        planner = AmortizationPlanner(Decimal("9999.99"), Decimal("15000"), Decimal("33.33"))
        for split in planner.splits(12):
            self.assertEqual(split.investor_portion + split.company_portion, split.amount)

    def test_without_investor_company_keeps_everything(self):
        planner = AmortizationPlanner(Decimal("10000"), Decimal("30000"), Decimal("20"), has_investor=False)
        self.assertFalse(planner.has_investor)
        self.assertEqual(planner.recovery_months, 0)
        split = planner.split(0)
        self.assertEqual(split.investor_portion, Decimal("0.00"))
        self.assertEqual(split.company_portion, Decimal("10000.00"))
        self.assertIsNone(planner.earning_start_date(date(2026, 1, 15)))

    def test_earning_start_date(self):
        planner = AmortizationPlanner(Decimal("10000"), Decimal("30000"), Decimal("20"))
        self.assertEqual(planner.earning_start_date(date(2026, 1, 15)), date(2026, 4, 15))

    def test_invalid_terms(self):
        with self.assertRaises(InvalidFinancingTerms):
            AmortizationPlanner(0)
        with self.assertRaises(InvalidFinancingTerms):
            AmortizationPlanner(Decimal("10000"), Decimal("-1"))
        with self.assertRaises(InvalidFinancingTerms):
            AmortizationPlanner(Decimal("10000"), Decimal("1000"), Decimal("120"))
        with self.assertRaises(InvalidFinancingTerms):
            AmortizationPlanner("NaN")
        with self.assertRaises(InvalidFinancingTerms):
            AmortizationPlanner(Decimal("10000"), Decimal("Infinity"))


class ScheduleGeneratorTests(SimpleTestCase):
    def test_month_date_keeps_billing_day(self):
        self.assertEqual(month_date(date(2026, 1, 31), 1, 28), date(2026, 2, 28))
        self.assertEqual(month_date(date(2026, 11, 15), 2, 5), date(2027, 1, 5))
        with self.assertRaises(InvalidFinancingTerms):
            month_date(date(2026, 1, 1), 0, 30)

    def test_payments_and_orders_follow_their_days(self):
        generator = ScheduleGenerator(
            planner=AmortizationPlanner(Decimal("10000")),
            start_date=date(2026, 1, 15),
            duration_months=3,
            payment_day=5,
            service_day=20,
        )
        payments = generator.payments(today=date(2026, 2, 1))
        self.assertEqual([p.due_date for p in payments], [date(2026, 1, 5), date(2026, 2, 5), date(2026, 3, 5)])
        self.assertEqual([p.period for p in payments], [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)])
        self.assertEqual([p.is_past for p in payments], [True, False, False])

        orders = generator.orders(today=date(2026, 2, 1))
        self.assertEqual([o.scheduled_date for o in orders], [date(2026, 1, 20), date(2026, 2, 20), date(2026, 3, 20)])

    def test_duration_must_be_positive(self):
        with self.assertRaises(InvalidFinancingTerms):
            ScheduleGenerator(AmortizationPlanner(Decimal("1")), date(2026, 1, 1), 0, 1, 1)


class OverdueTests(SimpleTestCase):
    def test_only_open_payments_past_due_are_overdue(self):
        today = date(2026, 3, 10)
        self.assertTrue(is_payment_overdue("pending", date(2026, 3, 9), today))
        self.assertTrue(is_payment_overdue("overdue", date(2026, 3, 9), today))
        self.assertFalse(is_payment_overdue("pending", date(2026, 3, 10), today))
        self.assertFalse(is_payment_overdue("paid", date(2026, 1, 1), today))
        self.assertFalse(is_payment_overdue("cancelled", date(2026, 1, 1), today))


class QuoteCalculationTests(SimpleTestCase):
    def _inputs(self, **kwargs):
        values = {
            "vehicular_gates_single": 1,
            "vehicular_gates_double": 1,
            "pedestrian_doors": 2,
            "controlled_exits": 1,
            "num_houses": 100,
        }
        values.update(kwargs)
        return QuoteInputs(**values)

    def test_monthly_base_and_plans(self):
        breakdown = calculate_quote(self._inputs(), QUOTE_PRICES)
        self.assertEqual(breakdown.monthly_base, Decimal("12000"))
        self.assertEqual(breakdown.pedestrian_total, Decimal("1200"))
        self.assertEqual(breakdown.houses_base_total, Decimal("3500"))
        self.assertEqual(
            [(p.months, p.monthly, p.per_house) for p in breakdown.plans],
            [
                (18, Decimal("12000.00"), Decimal("120.00")),
                (24, Decimal("11400.00"), Decimal("114.00")),
                (36, Decimal("10800.00"), Decimal("108.00")),
            ],
        )
        self.assertEqual(breakdown.implementation_fee, Decimal("11400.00"))
        self.assertEqual(breakdown.recovery_payments, 1)

    def test_implementation_fee_scales_with_configured_months(self):
        prices = dict(QUOTE_PRICES, implementation_fee_months=Decimal("2"))
        breakdown = calculate_quote(self._inputs(), prices)
        self.assertEqual(breakdown.implementation_fee, Decimal("22800.00"))
        self.assertEqual(breakdown.recovery_payments, 2)

    def test_no_quote_without_houses_or_prices(self):
        self.assertIsNone(calculate_quote(self._inputs(num_houses=0), QUOTE_PRICES))
        self.assertIsNone(calculate_quote(self._inputs(), {}))

    def test_json_breakdown_is_serializable(self):
        data = calculate_quote(self._inputs(), QUOTE_PRICES).as_json()
        json.dumps(data)
        self.assertEqual(data["plans"][1]["monthly"], 11400.0)
        self.assertEqual(data["recovery_payments"], 1)


class FormattingTests(SimpleTestCase):
    def test_money_and_month_labels(self):
        self.assertEqual(format_money(Decimal("1234.5")), "$1,234.50")
        self.assertEqual(format_money(Decimal("-10")), "-$10.00")
        self.assertEqual(format_money(None), "$0.00")
        self.assertEqual(month_label(date(2026, 3, 1)), "Marzo 2026")


# ---------------------------------------------------------------------------
# Contratos
# ---------------------------------------------------------------------------

class DevelopmentLifecycleTests(BaseAppTestCase):
    today = date(2026, 1, 15)

    def _build(self, **kwargs):
        values = {
            "name": "Villas del Sol",
            "address": "Av. Sol 10",
            "contact_name": "Mesa directiva",
            "contact_phone": "555-000-1111",
            "contact_email": "mesa@villas.mx",
            "contract_start_date": date(2026, 1, 15),
            "contract_duration_months": 12,
            "monthly_payment": Decimal("10000.00"),
            "payment_day": 5,
            "service_day": 10,
        }
        values.update(kwargs)
        return AccessDevelopment(**values)

    def _build_with_investor(self):
        return self._build(
            has_investor=True,
            investor_name="Inversiones del Norte",
            investor_amount=Decimal("30000.00"),
            investor_profit_percent=Decimal("20.00"),
        )

    def test_create_development_builds_full_schedule(self):
        user = self.make_user()
        development = create_development(self._build(), user=user, today=self.today)

        self.assertEqual(development.payments.count(), 12)
        self.assertEqual(development.scheduled_orders.count(), 12)
        self.assertEqual(development.client.name, "Villas del Sol")
        self.assertEqual(development.client.phone, "5550001111")
        self.assertFalse(InvestorLoan.objects.filter(development=development).exists())

        order = development.installation_order
        self.assertEqual(order.delivery_date, date(2026, 2, 9))
        self.assertEqual(order.description, "Instalación inicial - Villas del Sol")
        self.assertEqual(order.items.get().name, "Instalación de Acceso")

        log = development.logs.get(action=DevelopmentLog.Action.CREATED)
        self.assertEqual(log.metadata["payments_created"], 12)
        self.assertEqual(log.created_by, user)

    def test_create_development_reuses_existing_client(self):
        client = Factory.client(name="VILLAS DEL SOL")
        development = create_development(self._build(), today=self.today)
        self.assertEqual(development.client, client)
        self.assertEqual(Client.objects.count(), 1)

    def test_create_development_with_investor_creates_loan_and_splits(self):
        development = create_development(self._build_with_investor(), today=self.today)

        self.assertEqual(development.investor_recovery_months, 3)
        self.assertEqual(development.investor_start_earning_date, date(2026, 4, 15))

        loan = development.investor_loan
        self.assertEqual(loan.loan_number, "INV-2026-00001")
        self.assertEqual(loan.amount, Decimal("30000.00"))
        self.assertEqual(loan.recovery_months, 3)

        payments = list(development.payments.order_by("period"))
        self.assertTrue(all(p.is_recovery_period for p in payments[:3]))
        self.assertEqual(payments[0].investor_portion, Decimal("10000.00"))
        self.assertEqual(payments[3].investor_portion, Decimal("2000.00"))
        self.assertEqual(payments[3].company_portion, Decimal("8000.00"))

    def test_investor_with_zero_amount_is_ignored(self):
        development = create_development(
            self._build(has_investor=True, investor_name="Nadie", investor_amount=Decimal("0")),
            today=self.today,
        )
        self.assertFalse(development.has_investor)
        self.assertFalse(InvestorLoan.objects.filter(development=development).exists())

    def test_sync_schedule_is_idempotent(self):
        development = create_development(self._build(), today=self.today)
        result = sync_development_schedule(development, today=self.today)
        self.assertEqual(result.payments_created, 0)
        self.assertEqual(result.orders_created, 0)
        self.assertEqual(development.payments.count(), 12)

    def test_update_resplits_open_payments_and_extends_schedule(self):
        development = create_development(self._build_with_investor(), today=self.today)
        first = development.payments.order_by("period").first()
        register_payment(first, method=PaymentMethod.EFECTIVO)

        development.monthly_payment = Decimal("12000.00")
        development.contract_duration_months = 14
        update_development(development, today=self.today)

        first.refresh_from_db()
        self.assertEqual(first.amount, Decimal("10000.00"))
        self.assertEqual(development.payments.count(), 14)

        payments = list(development.payments.order_by("period"))
        self.assertEqual(payments[1].amount, Decimal("12000.00"))
        self.assertEqual(payments[1].investor_portion, Decimal("12000.00"))
        self.assertEqual(payments[5].investor_portion, Decimal("2400.00"))
        self.assertEqual(payments[13].period, date(2027, 2, 1))

        loan = InvestorLoan.objects.get(development=development)
        self.assertEqual(loan.recovery_months, 3)
        self.assertTrue(development.logs.filter(action=DevelopmentLog.Action.UPDATED).exists())

    def test_update_adds_loan_when_investor_is_added_later(self):
        development = create_development(self._build(), today=self.today)
        development.has_investor = True
        development.investor_name = "Capital Bajío"
        development.investor_amount = Decimal("20000.00")
        development.investor_profit_percent = Decimal("10.00")
        update_development(development, today=self.today)

        self.assertEqual(InvestorLoan.objects.get(development=development).recovery_months, 2)

    def test_update_recomputes_loan_status_against_new_principal(self):
        development = create_development(self._build_with_investor(), today=self.today)
        for payment in list(development.payments.order_by("period")[:2]):
            register_payment(payment, method=PaymentMethod.EFECTIVO)

        development.investor_amount = Decimal("20000.00")
        update_development(development, today=self.today)
        loan = InvestorLoan.objects.get(development=development)
        self.assertEqual(loan.amount_recovered, Decimal("20000.00"))
        self.assertEqual(loan.status, InvestorLoan.Status.RECOVERED)

        development.investor_amount = Decimal("40000.00")
        update_development(development, today=self.today)
        loan.refresh_from_db()
        self.assertEqual(loan.recovery_months, 4)
        self.assertEqual(loan.status, InvestorLoan.Status.ACTIVE)

    def test_removing_investor_closes_loan(self):
        development = create_development(self._build_with_investor(), today=self.today)
        development.has_investor = False
        update_development(development, today=self.today)

        development.refresh_from_db()
        self.assertEqual(development.investor_recovery_months, 0)
        self.assertEqual(
            InvestorLoan.objects.get(development=development).status, InvestorLoan.Status.COMPLETED
        )
        self.assertFalse(development.payments.filter(investor_portion__gt=0).exists())

    def test_update_keeps_completed_loan_closed(self):
        development = create_development(self._build_with_investor(), today=self.today)
        change_status(development, AccessDevelopment.Status.COMPLETED, today=self.today)
        development.investor_amount = Decimal("10000.00")
        update_development(development, today=self.today)
        self.assertEqual(
            InvestorLoan.objects.get(development=development).status, InvestorLoan.Status.COMPLETED
        )

    def test_cancel_only_touches_future_items(self):
        development = create_development(self._build(), today=self.today)
        change_status(development, AccessDevelopment.Status.CANCELLED, today=date(2026, 3, 1))

        statuses = dict(development.payments.values_list("period", "status"))
        self.assertEqual(statuses[date(2026, 2, 1)], DevelopmentPayment.Status.PENDING)
        self.assertEqual(statuses[date(2026, 3, 1)], DevelopmentPayment.Status.CANCELLED)
        self.assertFalse(development.scheduled_orders.filter(
            scheduled_date__gte=date(2026, 3, 1), status=ScheduledServiceOrder.Status.PENDING
        ).exists())
        self.assertTrue(development.logs.filter(action=DevelopmentLog.Action.STATUS).exists())

    def test_complete_closes_investor_loan(self):
        development = create_development(self._build_with_investor(), today=self.today)
        change_status(development, AccessDevelopment.Status.COMPLETED, today=self.today)
        self.assertEqual(
            InvestorLoan.objects.get(development=development).status, InvestorLoan.Status.COMPLETED
        )

    def test_invalid_status_is_rejected(self):
        development = Factory.development()
        with self.assertRaises(ValueError):
            change_status(development, "archivado")


# ---------------------------------------------------------------------------
# Corrida diaria
# ---------------------------------------------------------------------------

class ProcessAccessOrdersTests(BaseAppTestCase):
    def setUp(self):
        self.development = create_development(
            AccessDevelopment(
                name="Lomas Altas",
                contact_email="admin@lomas.mx",
                contract_start_date=date(2026, 1, 15),
                contract_duration_months=6,
                monthly_payment=Decimal("8000.00"),
                payment_day=5,
                service_day=10,
            ),
            today=date(2026, 1, 15),
        )

    def test_generates_due_orders_and_collections_once(self):
        result = process_access_orders(today=date(2026, 2, 10))
        self.assertEqual(result.orders_processed, 2)
        self.assertEqual(result.payments_generated, 2)
        self.assertEqual(result.errors, [])

        generated = self.development.scheduled_orders.filter(status=ScheduledServiceOrder.Status.GENERATED)
        self.assertEqual(generated.count(), 2)
        order = generated.order_by("scheduled_date").first().order
        self.assertEqual(order.description, "Servicio mensual de acceso - Lomas Altas")
        self.assertEqual(order.delivery_date, date(2026, 1, 10))

        collection = PendingCollection.objects.order_by("due_date").first()
        self.assertEqual(collection.client_name, "Lomas Altas")
        self.assertEqual(collection.notes, "Pago mensual fraccionamiento: Lomas Altas - Período: Enero 2026")

        again = process_access_orders(today=date(2026, 2, 10))
        self.assertEqual(again.orders_processed, 0)
        self.assertEqual(again.payments_generated, 0)
        self.assertEqual(Order.objects.count(), 3)

    def test_skips_orders_when_auto_generation_is_off(self):
        self.development.auto_generate_orders = False
        self.development.save()
        result = process_access_orders(today=date(2026, 2, 10))
        self.assertEqual(result.orders_processed, 0)
        self.assertEqual(result.orders_skipped, 2)
        self.assertEqual(result.payments_generated, 2)

    def test_inactive_developments_get_no_collections(self):
        change_status(self.development, AccessDevelopment.Status.SUSPENDED, today=date(2026, 1, 20))
        result = process_access_orders(today=date(2026, 2, 10))
        self.assertEqual(result.payments_generated, 0)
        self.assertEqual(result.orders_skipped, 2)

    def test_paid_payments_are_not_queued(self):
        first = self.development.payments.order_by("period").first()
        register_payment(first, method=PaymentMethod.EFECTIVO)
        result = process_access_orders(today=date(2026, 2, 10))
        self.assertEqual(result.payments_generated, 1)

    def test_order_taken_by_another_run_is_not_generated_again(self):
        scheduled = self.development.scheduled_orders.order_by("scheduled_date").first()
        stale = ScheduledServiceOrder.objects.get(pk=scheduled.pk)

        order = generate_scheduled_order(scheduled, date(2026, 2, 10))
        self.assertIsNotNone(order)
        self.assertIsNone(generate_scheduled_order(stale, date(2026, 2, 10)))

        scheduled.refresh_from_db()
        self.assertEqual(scheduled.order, order)
        self.assertEqual(Order.objects.count(), 2)

    def test_errors_are_reported_and_processing_continues(self):
        with patch(
            "developments.services.processing.create_service_order",
            side_effect=RuntimeError("sin conexión"),
        ):
            result = process_access_orders(today=date(2026, 2, 10))
        self.assertEqual(len(result.errors), 2)
        self.assertIn("sin conexión", result.errors[0])
        self.assertEqual(result.payments_generated, 2)

    def test_management_command_prints_summary(self):
        out = StringIO()
        call_command("process_access_orders", "--date", "2026-02-10", "--verbose-details", stdout=out)
        output = out.getvalue()
        self.assertIn("Órdenes generadas: 2", output)
        self.assertIn("Cobranzas: 2", output)
        self.assertIn("Lomas Altas", output)

    def test_management_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command("process_access_orders", "--date", "10/02/2026", stdout=StringIO())


@override_settings(ACCESS_API_TOKEN="token-de-prueba")
class ProcessAccessOrdersApiTests(BaseAppTestCase):
    url = "/api/fraccionamientos/procesar-ordenes"

    def setUp(self):
        Factory.payment(development=Factory.development(), period=date(2026, 1, 1))

    def test_url_name(self):
        self.assertEqual(reverse("developments_api:procesar_ordenes"), self.url)

    def test_requires_valid_token(self):
        response = self.client.post(self.url, HTTP_AUTHORIZATION="Bearer otro")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "invalid_token")

    @override_settings(ACCESS_API_TOKEN="")
    def test_disabled_without_configured_token(self):
        response = self.client.post(self.url, HTTP_AUTHORIZATION="Bearer token-de-prueba")
        self.assertEqual(response.status_code, 503)

    def test_runs_processing_for_given_date(self):
        response = self.client.post(
            self.url,
            data=json.dumps({"fecha": "2026-01-10"}),
            content_type="application/json",
            HTTP_X_API_KEY="token-de-prueba",
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["payments_generated"], 1)

    def test_rejects_bad_payload(self):
        response = self.client.post(
            self.url,
            data="{no es json",
            content_type="application/json",
            HTTP_AUTHORIZATION="Bearer token-de-prueba",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "invalid_payload")

        response = self.client.post(
            self.url,
            data=json.dumps({"fecha": "mañana"}),
            content_type="application/json",
            HTTP_AUTHORIZATION="Bearer token-de-prueba",
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            self.url,
            data=json.dumps({"fecha": 20260110}),
            content_type="application/json",
            HTTP_AUTHORIZATION="Bearer token-de-prueba",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "invalid_payload")

    def test_only_post_is_allowed(self):
        response = self.client.get(self.url, HTTP_AUTHORIZATION="Bearer token-de-prueba")
        self.assertEqual(response.status_code, 405)


# ---------------------------------------------------------------------------
# Avisos y recibos
# ---------------------------------------------------------------------------

class PaymentDocumentTests(BaseAppTestCase):
    def setUp(self):
        self.development = Factory.development(name="Villas del Sol", contact_email="mesa@villas.mx")
        self.payment = Factory.payment(development=self.development, period=date(2026, 3, 1))

    def test_document_numbers(self):
        short = str(self.payment.pk).replace("-", "")[:6].upper()
        self.assertEqual(notice_number(self.payment), f"AVI-202603-{short}")

        register_payment(self.payment, method=PaymentMethod.TARJETA, paid_at=_aware(2026, 4, 2, 12, 0))
        self.payment.refresh_from_db()
        self.assertEqual(receipt_number(self.payment), f"REC-202604-{short}")

    def test_notice_context_flags_overdue(self):
        context = build_document_context(self.payment, NOTICE, today=date(2026, 3, 20))
        self.assertTrue(context["is_overdue"])
        self.assertEqual(context["period_label"], "Marzo 2026")
        self.assertEqual(context["amount_label"], "$10,000.00")

    def test_receipt_requires_paid_payment(self):
        with self.assertRaises(ValueError):
            build_document_context(self.payment, RECEIPT)

    @patch("developments.services.documents.HTML")
    def test_send_notice_attaches_pdf(self, mock_html):
        _fake_pdf(mock_html)
        number = send_payment_document(self.payment, NOTICE, "http://testserver/", today=date(2026, 3, 1))

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["mesa@villas.mx"])
        self.assertIn(number, message.subject)
        self.assertIn("Marzo 2026", message.body)
        filename, content, mimetype = message.attachments[0]
        self.assertEqual(filename, f"{number}.pdf")
        self.assertEqual(content, b"%PDF-1.4 prueba")
        self.assertEqual(mimetype, "application/pdf")

    def test_send_requires_contact_email(self):
        self.development.contact_email = ""
        self.development.save()
        with self.assertRaises(MissingContactEmail):
            send_payment_document(self.payment, NOTICE, "http://testserver/")
        self.assertEqual(len(mail.outbox), 0)


# ---------------------------------------------------------------------------
# Prospectos y cotizador
# ---------------------------------------------------------------------------

class LeadServiceTests(BaseAppTestCase):
    def test_save_lead_records_comment_history(self):
        user = self.make_user(role=RoleCode.VENTAS)
        lead = save_lead(DevelopmentLead(name="Bosques"), user=user, comment="  Llamar el lunes ")

        self.assertEqual(lead.created_by, user)
        self.assertEqual(lead.comments, "Llamar el lunes")
        self.assertEqual(lead.last_activity_description, "Prospecto creado")
        self.assertEqual(lead.comment_history.get().comment, "Llamar el lunes")

        save_lead(lead, user=user)
        lead.refresh_from_db()
        self.assertEqual(lead.last_activity_description, "Prospecto actualizado")
        self.assertEqual(lead.comment_history.count(), 1)

    def test_add_comment_ignores_blank_text(self):
        lead = Factory.lead()
        self.assertIsNone(add_comment(lead, "   "))
        comment = add_comment(lead, "Enviamos propuesta")
        lead.refresh_from_db()
        self.assertEqual(comment.comment, "Enviamos propuesta")
        self.assertEqual(lead.comments, "Enviamos propuesta")
        self.assertEqual(lead.last_activity_description, "Comentario agregado")

    def test_reminders_only_for_open_leads(self):
        today = date(2026, 3, 10)
        due = Factory.lead(reminder_date=date(2026, 3, 9))
        Factory.lead(reminder_date=date(2026, 3, 11))
        Factory.lead(reminder_date=date(2026, 3, 1), status=DevelopmentLead.Status.RECHAZADO)
        self.assertEqual(list(DevelopmentLead.objects.reminders_due(today)), [due])
        self.assertTrue(due.is_reminder_due(today))

    def test_initial_contract_values_from_lead(self):
        lead = Factory.lead(contract_months=24, has_investor=True, investor_amount=Decimal("50000"))
        initial = development_initial_from_lead(lead)
        self.assertEqual(initial["name"], lead.name)
        self.assertEqual(initial["monthly_payment"], Decimal("8000.00"))
        self.assertEqual(initial["contract_duration_months"], 24)
        self.assertEqual(initial["investor_amount"], Decimal("50000"))

    def test_convert_lead_marks_accepted(self):
        lead = Factory.lead(reminder_date=date(2026, 3, 1))
        development = Factory.development()
        convert_lead(lead, development)

        lead.refresh_from_db()
        development.refresh_from_db()
        self.assertEqual(lead.status, DevelopmentLead.Status.ACEPTADO)
        self.assertIsNone(lead.reminder_date)
        self.assertEqual(development.lead, lead)
        self.assertTrue(LeadComment.objects.filter(lead=lead, comment__startswith="Convertido a contrato").exists())
        self.assertTrue(development.logs.filter(action=DevelopmentLog.Action.NOTE).exists())

    def test_closed_lead_cannot_be_converted(self):
        lead = Factory.lead(status=DevelopmentLead.Status.RECHAZADO)
        with self.assertRaises(LeadNotConvertible):
            convert_lead(lead, Factory.development())

    def test_conversion_checks_current_lead_status(self):
        lead = Factory.lead()
        DevelopmentLead.objects.filter(pk=lead.pk).update(status=DevelopmentLead.Status.RECHAZADO)
        with self.assertRaises(LeadNotConvertible):
            convert_lead(lead, Factory.development())


class QuoteLeadTests(BaseAppTestCase):
    def test_seeded_prices_are_available(self):
        prices = QuoteConfig.as_dict()
        for key, value in QUOTE_PRICES.items():
            self.assertEqual(prices[key], value)

    def test_save_quote_creates_and_updates_lead(self):
        inputs = QuoteInputs(vehicular_gates_single=1, vehicular_gates_double=1,
                             pedestrian_doors=2, controlled_exits=1, num_houses=100)
        breakdown = calculate_quote(inputs, QUOTE_PRICES)
        lead = save_quote_as_lead({"name": "Bosques", "contact_email": "a@b.mx"}, inputs, breakdown)

        self.assertEqual(lead.status, DevelopmentLead.Status.NUEVO)
        self.assertEqual(lead.monthly_payment_proposed, Decimal("11400.00"))
        self.assertEqual(lead.contract_months, 24)
        self.assertEqual(lead.num_houses, 100)
        self.assertEqual(lead.last_activity_description, "Cotización creada")

        inputs.num_houses = 200
        updated = save_quote_as_lead({"name": "Bosques"}, inputs, calculate_quote(inputs, QUOTE_PRICES), lead=lead)
        self.assertEqual(updated.pk, lead.pk)
        self.assertEqual(updated.last_activity_description, "Cotización actualizada")
        self.assertEqual(DevelopmentLead.objects.count(), 1)


# ---------------------------------------------------------------------------
# Vistas
# ---------------------------------------------------------------------------

class CollectionsVisibilityTests(BaseAppTestCase):
    def setUp(self):
        self.development = Factory.development(contract_start_date=date(2026, 2, 15))

    def _payment(self, period, created_at):
        return Factory.payment(development=self.development, period=period, created_at=created_at)

    def test_visibility_rules(self):
        month_start = date(2026, 3, 1)
        current = self._payment(date(2026, 3, 1), _aware(2026, 2, 1, 9, 0))
        future = self._payment(date(2026, 4, 1), _aware(2026, 2, 1, 9, 0))
        retroactive = self._payment(date(2026, 2, 1), _aware(2026, 2, 20, 9, 0))
        before_contract = self._payment(date(2026, 1, 1), _aware(2025, 12, 1, 9, 0))

        self.assertTrue(is_visible_in_collections(current, month_start))
        self.assertFalse(is_visible_in_collections(future, month_start))
        self.assertFalse(is_visible_in_collections(retroactive, month_start))
        self.assertFalse(is_visible_in_collections(before_contract, month_start))


class DevelopmentViewTests(BaseAppTestCase):
    PERMISSIONS = [
        "developments:development_list",
        "developments:development_create",
        "developments:development_detail",
        "developments:development_edit",
        "developments:development_status",
        "developments:development_sync_schedule",
        "developments:schedule_preview",
        "developments:payment_list",
        "developments:payment_register",
        "developments:notice_list",
        "developments:notice_pdf",
        "developments:notice_send",
        "developments:receipt_pdf",
        "developments:investor_overview",
    ]

    def setUp(self):
        self.user = self.login_with_permissions(RoleCode.GERENTE, self.PERMISSIONS)

    def _form_data(self, **kwargs):
        data = {
            "name": "Residencial Arboleda",
            "address": "Calle Roble 5",
            "contact_name": "Comité",
            "contact_phone": "5551112222",
            "contact_email": "comite@arboleda.mx",
            "contract_start_date": "2026-01-15",
            "contract_duration_months": "12",
            "monthly_payment": "10000.00",
            "payment_day": "5",
            "service_day": "10",
            "auto_generate_orders": "on",
            "investor_account_type": "fiscal",
            "notes": "",
        }
        data.update(kwargs)
        return data

    def test_create_development_view(self):
        response = self.client.post(reverse("developments:development_create"), self._form_data())
        development = AccessDevelopment.objects.get(name="Residencial Arboleda")
        self.assertRedirects(
            response,
            reverse("developments:development_detail", args=[development.pk]),
            fetch_redirect_response=False,
        )
        self.assertEqual(development.payments.count(), 12)
        self.assertEqual(development.created_by, self.user)

        detail = self.client.get(reverse("developments:development_detail", args=[development.pk]))
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(len(detail.context["payments"]), 12)

    def test_create_rejects_incomplete_investor(self):
        response = self.client.post(
            reverse("developments:development_create"),
            self._form_data(has_investor="on", investor_name="", investor_amount=""),
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("investor_name", response.context["form"].errors)
        self.assertIn("investor_amount", response.context["form"].errors)
        self.assertFalse(AccessDevelopment.objects.exists())

    def test_create_from_lead_converts_it(self):
        lead = Factory.lead()
        response = self.client.get(reverse("developments:development_create"), {"lead": lead.pk})
        self.assertEqual(response.context["form"].initial["name"], lead.name)

        self.client.post(
            f"{reverse('developments:development_create')}?lead={lead.pk}",
            self._form_data(name=lead.name),
        )
        lead.refresh_from_db()
        self.assertEqual(lead.status, DevelopmentLead.Status.ACEPTADO)
        self.assertEqual(AccessDevelopment.objects.get().lead, lead)

    def test_lead_closed_meanwhile_rolls_back_contract(self):
        lead = Factory.lead()
        with patch(
            "developments.views.convert_lead",
            side_effect=LeadNotConvertible("El prospecto está rechazado y no puede convertirse."),
        ):
            response = self.client.post(
                f"{reverse('developments:development_create')}?lead={lead.pk}",
                self._form_data(name=lead.name),
            )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context["form"].non_field_errors())
        self.assertFalse(AccessDevelopment.objects.exists())
        self.assertFalse(Order.objects.exists())

    def test_edit_cannot_shorten_contract(self):
        self.client.post(reverse("developments:development_create"), self._form_data())
        development = AccessDevelopment.objects.get()
        response = self.client.post(
            reverse("developments:development_edit", args=[development.pk]),
            self._form_data(contract_duration_months="6"),
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("contract_duration_months", response.context["form"].errors)

    def test_edit_ignores_locked_fields(self):
        self.client.post(reverse("developments:development_create"), self._form_data())
        development = AccessDevelopment.objects.get()
        self.client.post(
            reverse("developments:development_edit", args=[development.pk]),
            self._form_data(payment_day="20", monthly_payment="11000.00"),
        )
        development.refresh_from_db()
        self.assertEqual(development.payment_day, 5)
        self.assertEqual(development.monthly_payment, Decimal("11000.00"))

    def test_status_view(self):
        development = Factory.development()
        response = self.client.post(
            reverse("developments:development_status", args=[development.pk]),
            {"status": AccessDevelopment.Status.SUSPENDED},
        )
        self.assertEqual(response.status_code, 302)
        development.refresh_from_db()
        self.assertEqual(development.status, AccessDevelopment.Status.SUSPENDED)

    def test_sync_schedule_view_fills_missing_items(self):
        development = Factory.development(contract_duration_months=3)
        self.client.post(reverse("developments:development_sync_schedule", args=[development.pk]))
        self.assertEqual(development.payments.count(), 3)
        self.assertTrue(development.logs.filter(action=DevelopmentLog.Action.SCHEDULE).exists())

    def test_schedule_preview_partial(self):
        response = self.client.get(reverse("developments:schedule_preview"), {
            "contract_start_date": "2026-01-15",
            "contract_duration_months": "6",
            "monthly_payment": "10000",
            "payment_day": "5",
            "has_investor": "on",
            "investor_amount": "30000",
            "investor_profit_percent": "20",
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context["drafts"]), 6)
        self.assertEqual(response.context["earning_start"], date(2026, 4, 15))

        invalid = self.client.get(reverse("developments:schedule_preview"), {"monthly_payment": "0"})
        self.assertIn("error", invalid.context)

        for value in ("NaN", "Infinity", "abc"):
            response = self.client.get(reverse("developments:schedule_preview"), {"monthly_payment": value})
            self.assertEqual(response.status_code, 200)
            self.assertIn("error", response.context)

    def test_payment_list_shows_current_month_only(self):
        today = timezone.localdate()
        month_start = today.replace(day=1)
        development = Factory.development(contract_start_date=month_start)
        early = timezone.make_aware(datetime(month_start.year, month_start.month, 1, 0, 5))
        current = Factory.payment(development=development, period=month_start, created_at=early)
        next_month = date(month_start.year + (month_start.month == 12), month_start.month % 12 + 1, 1)
        Factory.payment(development=development, period=next_month, created_at=early)

        response = self.client.get(reverse("developments:payment_list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["payments"], [current])
        self.assertEqual(response.context["total_pending"], Decimal("10000.00"))

        response = self.client.get(reverse("developments:payment_list"), {"development": "no-es-uuid"})
        self.assertEqual(response.status_code, 200)

    def test_register_payment_view(self):
        development = Factory.development()
        payment = Factory.payment(development=development)
        response = self.client.post(
            reverse("developments:payment_register", args=[payment.pk]),
            {"payment_method": PaymentMethod.TRANSFERENCIA, "payment_reference": "SPEI-1", "next": "payments"},
        )
        self.assertRedirects(response, reverse("developments:payment_list"), fetch_redirect_response=False)
        payment.refresh_from_db()
        self.assertTrue(payment.is_paid)
        self.assertEqual(payment.paid_by, self.user)

        again = self.client.get(reverse("developments:payment_register", args=[payment.pk]))
        self.assertEqual(again.status_code, 302)

    @patch("developments.services.documents.HTML")
    def test_notice_pdf_and_send(self, mock_html):
        _fake_pdf(mock_html)
        development = Factory.development(contact_email="mesa@villas.mx")
        payment = Factory.payment(development=development)

        pdf = self.client.get(reverse("developments:notice_pdf", args=[payment.pk]))
        self.assertEqual(pdf.status_code, 200)
        self.assertEqual(pdf["Content-Type"], "application/pdf")
        self.assertIn(notice_number(payment), pdf["Content-Disposition"])

        response = self.client.post(reverse("developments:notice_send", args=[payment.pk]))
        self.assertRedirects(response, reverse("developments:notice_list"), fetch_redirect_response=False)
        self.assertEqual(len(mail.outbox), 1)
        self.assertTrue(development.logs.filter(action=DevelopmentLog.Action.DOCUMENT).exists())

    def test_notice_send_without_email_shows_error(self):
        development = Factory.development(contact_email="")
        payment = Factory.payment(development=development)
        response = self.client.post(reverse("developments:notice_send", args=[payment.pk]), follow=True)
        self.assertEqual(len(mail.outbox), 0)
        self.assertContains(response, "no tiene correo de contacto")

    def test_receipt_pdf_for_unpaid_payment_is_404(self):
        payment = Factory.payment(development=Factory.development())
        response = self.client.get(reverse("developments:receipt_pdf", args=[payment.pk]))
        self.assertEqual(response.status_code, 404)

    def test_investor_overview_totals(self):
        development = Factory.development_with_investor()
        Factory.investor_loan(development=development, amount_recovered=Decimal("15000.00"))
        response = self.client.get(reverse("developments:investor_overview"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["rows"][0]["progress"], Decimal("50.00"))
        self.assertEqual(response.context["totals"]["pending"], Decimal("15000.00"))

    def test_investor_overview_skips_developments_without_investor(self):
        development = Factory.development()
        Factory.investor_loan(
            development=development,
            investor_name="Capital Bajío",
            amount=Decimal("20000.00"),
            status=InvestorLoan.Status.COMPLETED,
        )
        response = self.client.get(reverse("developments:investor_overview"))
        self.assertEqual(response.context["rows"], [])
        self.assertEqual(response.context["totals"]["invested"], Decimal("0"))

    def test_views_require_role_permission(self):
        self.login_as(self.make_user(role=RoleCode.TECNICO))
        response = self.client.get(reverse("developments:development_list"))
        self.assertEqual(response.status_code, 403)


class LeadAndQuoteViewTests(BaseAppTestCase):
    PERMISSIONS = [
        "developments:lead_list",
        "developments:lead_create",
        "developments:lead_detail",
        "developments:lead_edit",
        "developments:lead_delete",
        "developments:lead_comment_add",
        "developments:lead_convert",
        "developments:quote_calculator",
        "developments:quote_save_lead",
        "developments:quote_config",
        "developments:development_create",
    ]

    def setUp(self):
        self.user = self.login_with_permissions(RoleCode.VENTAS, self.PERMISSIONS)

    def test_create_lead_with_comment(self):
        response = self.client.post(reverse("developments:lead_create"), {
            "name": "Bosques",
            "status": DevelopmentLead.Status.NUEVO,
            "comment": "Primer contacto",
        })
        lead = DevelopmentLead.objects.get(name="Bosques")
        self.assertRedirects(response, reverse("developments:lead_detail", args=[lead.pk]), fetch_redirect_response=False)
        self.assertEqual(lead.comment_history.count(), 1)

        detail = self.client.get(reverse("developments:lead_detail", args=[lead.pk]))
        self.assertContains(detail, "Primer contacto")

    def test_lead_list_reminder_filter(self):
        due = Factory.lead(reminder_date=date(2020, 1, 1))
        Factory.lead()
        response = self.client.get(reverse("developments:lead_list"), {"status": "reminders"})
        self.assertEqual(list(response.context["leads"]), [due])

    def test_comment_add_with_htmx_returns_partial(self):
        lead = Factory.lead()
        response = self.client.post(
            reverse("developments:lead_comment_add", args=[lead.pk]),
            {"comment": "Quieren visita"},
            HTTP_HX_REQUEST="true",
        )
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "developments/partials/lead_comments.html")
        self.assertContains(response, "Quieren visita")

    def test_delete_lead(self):
        lead = Factory.lead()
        self.client.post(reverse("developments:lead_delete", args=[lead.pk]))
        self.assertFalse(DevelopmentLead.objects.filter(pk=lead.pk).exists())

    def test_convert_redirects_to_contract_form(self):
        lead = Factory.lead()
        response = self.client.get(reverse("developments:lead_convert", args=[lead.pk]))
        self.assertEqual(response.url, f"{reverse('developments:development_create')}?lead={lead.pk}")

        closed = Factory.lead(status=DevelopmentLead.Status.ACEPTADO)
        response = self.client.get(reverse("developments:lead_convert", args=[closed.pk]))
        self.assertEqual(response.url, reverse("developments:lead_detail", args=[closed.pk]))

    def test_quote_calculator_htmx(self):
        response = self.client.get(reverse("developments:quote_calculator"), {
            "name": "Bosques",
            "vehicular_gates_single": "1",
            "vehicular_gates_double": "1",
            "pedestrian_doors": "2",
            "controlled_exits": "1",
            "num_houses": "100",
        }, HTTP_HX_REQUEST="true")
        self.assertTemplateUsed(response, "developments/partials/quote_breakdown.html")
        self.assertEqual(response.context["breakdown"].reference_plan.monthly, Decimal("11400.00"))

    def test_quote_save_lead(self):
        response = self.client.post(reverse("developments:quote_save_lead"), {
            "name": "Bosques",
            "vehicular_gates_single": "1",
            "vehicular_gates_double": "1",
            "pedestrian_doors": "2",
            "controlled_exits": "1",
            "num_houses": "100",
        })
        lead = DevelopmentLead.objects.get(name="Bosques")
        self.assertRedirects(response, reverse("developments:lead_detail", args=[lead.pk]), fetch_redirect_response=False)
        self.assertEqual(lead.monthly_payment_proposed, Decimal("11400.00"))
        self.assertEqual(lead.quote_breakdown["implementation_fee"], 11400.0)

    def test_quote_save_without_houses_is_rejected(self):
        response = self.client.post(reverse("developments:quote_save_lead"), {
            "name": "Bosques",
            "vehicular_gates_single": "0",
            "vehicular_gates_double": "0",
            "pedestrian_doors": "0",
            "controlled_exits": "0",
            "num_houses": "0",
        })
        self.assertEqual(response.status_code, 200)
        self.assertFalse(DevelopmentLead.objects.exists())

    def test_quote_config_updates_prices(self):
        data = {key: str(value) for key, value in QUOTE_PRICES.items()}
        data["per_house_base_cost"] = "40"
        response = self.client.post(reverse("developments:quote_config"), data)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(QuoteConfig.objects.get(key="per_house_base_cost").value, Decimal("40.00"))

        data["discount_24_months"] = "150"
        response = self.client.post(reverse("developments:quote_config"), data)
        self.assertEqual(response.status_code, 200)
        self.assertIn("discount_24_months", response.context["form"].errors)
