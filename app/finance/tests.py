from datetime import date, datetime
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone

from developments.models import DevelopmentLog, DevelopmentPayment, InvestorLoan
from developments.services.ledger import PaymentNotCollectible, register_payment
from developments.services.processing import queue_payment_collection
from finance.models import Income, PaymentMethod, PendingCollection
from users.models import RoleCode
from tests.base import BaseAppTestCase
from tests.factories import Factory


def _aware(*args):
    return timezone.make_aware(datetime(*args))


class RegisterPaymentTests(BaseAppTestCase):
    def setUp(self):
        self.user = self.make_user(role=RoleCode.COBRANZA)
        self.development = Factory.development(name="Villas del Sol")
        self.payment = Factory.payment(development=self.development, period=date(2026, 1, 1))

    def test_register_payment_creates_income_and_marks_paid(self):
        income = register_payment(
            self.payment,
            method=PaymentMethod.TRANSFERENCIA,
            reference="SPEI-123",
            user=self.user,
            paid_at=_aware(2026, 1, 20, 12, 0),
        )

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, DevelopmentPayment.Status.PAID)
        self.assertEqual(self.payment.paid_by, self.user)
        self.assertEqual(self.payment.payment_reference, "SPEI-123")

        self.assertEqual(income.income_number, "INC-202601-00001")
        self.assertEqual(income.amount, Decimal("10000.00"))
        self.assertEqual(income.income_date, date(2026, 1, 20))
        self.assertEqual(income.development_payment, self.payment)
        self.assertIn("Enero 2026", income.description)
        self.assertTrue(DevelopmentLog.objects.filter(
            development=self.development, action=DevelopmentLog.Action.PAYMENT
        ).exists())

    def test_income_numbers_continue_within_month(self):
        second = Factory.payment(development=self.development, period=date(2026, 2, 1))
        register_payment(self.payment, method=PaymentMethod.EFECTIVO, paid_at=_aware(2026, 2, 3, 10, 0))
        income = register_payment(second, method=PaymentMethod.EFECTIVO, paid_at=_aware(2026, 2, 4, 10, 0))
        self.assertEqual(income.income_number, "INC-202602-00002")

    def test_register_payment_closes_pending_collection(self):
        queue_payment_collection(self.payment)
        register_payment(self.payment, method=PaymentMethod.EFECTIVO)

        collection = PendingCollection.objects.get(related_id=self.payment.pk)
        self.assertEqual(collection.status, PendingCollection.Status.COLLECTED)
        self.assertIsNotNone(collection.collected_at)

    def test_paid_payment_cannot_be_collected_twice(self):
        register_payment(self.payment, method=PaymentMethod.EFECTIVO)
        with self.assertRaises(PaymentNotCollectible):
            register_payment(self.payment, method=PaymentMethod.EFECTIVO)
        self.assertEqual(Income.objects.count(), 1)

    def test_cancelled_payment_cannot_be_collected(self):
        self.payment.status = DevelopmentPayment.Status.CANCELLED
        self.payment.save()
        with self.assertRaises(PaymentNotCollectible):
            register_payment(self.payment, method=PaymentMethod.EFECTIVO)

    def test_unknown_method_is_rejected(self):
        with self.assertRaises(PaymentNotCollectible):
            register_payment(self.payment, method="bitcoin")
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, DevelopmentPayment.Status.PENDING)


class InvestorLedgerTests(BaseAppTestCase):
    def setUp(self):
        self.development = Factory.development_with_investor()
        self.loan = Factory.investor_loan(development=self.development)

    def _payment(self, month, *, recovery):
        portion = Decimal("10000.00") if recovery else Decimal("2000.00")
        return Factory.payment(
            development=self.development,
            period=date(2026, month, 1),
            investor_portion=portion,
            company_portion=Decimal("10000.00") - portion,
            is_recovery_period=recovery,
        )

    def test_recovery_payments_add_to_recovered_capital(self):
        register_payment(self._payment(1, recovery=True), method=PaymentMethod.EFECTIVO)
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.amount_recovered, Decimal("10000.00"))
        self.assertEqual(self.loan.amount_earned, Decimal("0"))
        self.assertEqual(self.loan.status, InvestorLoan.Status.ACTIVE)

    def test_loan_moves_to_earning_after_full_recovery(self):
        for month in (1, 2, 3):
            register_payment(self._payment(month, recovery=True), method=PaymentMethod.EFECTIVO)
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.status, InvestorLoan.Status.RECOVERED)

        register_payment(self._payment(4, recovery=False), method=PaymentMethod.EFECTIVO)
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.amount_recovered, Decimal("30000.00"))
        self.assertEqual(self.loan.amount_earned, Decimal("2000.00"))
        self.assertEqual(self.loan.status, InvestorLoan.Status.EARNING)

    def test_completed_loan_stays_completed_on_late_payment(self):
        self.loan.status = InvestorLoan.Status.COMPLETED
        self.loan.save()

        register_payment(self._payment(1, recovery=True), method=PaymentMethod.EFECTIVO)
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.amount_recovered, Decimal("10000.00"))
        self.assertEqual(self.loan.status, InvestorLoan.Status.COMPLETED)


class FinanceViewTests(BaseAppTestCase):
    def setUp(self):
        self.login_with_permissions(RoleCode.COBRANZA, [
            "finance:income_list",
            "finance:income_export_csv",
            "finance:collection_list",
        ])
        development = Factory.development(name="Villas del Sol")
        self.cash = register_payment(
            Factory.payment(development=development, period=date(2026, 1, 1)),
            method=PaymentMethod.EFECTIVO,
            paid_at=_aware(2026, 1, 10, 12, 0),
        )
        self.transfer = register_payment(
            Factory.payment(development=development, period=date(2026, 2, 1)),
            method=PaymentMethod.TRANSFERENCIA,
            paid_at=_aware(2026, 2, 10, 12, 0),
        )

    def test_income_list_filters_by_method(self):
        response = self.client.get(reverse("finance:income_list"), {"method": PaymentMethod.TRANSFERENCIA})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(list(response.context["incomes"]), [self.transfer])
        self.assertEqual(response.context["total_income"], Decimal("10000.00"))

    def test_income_list_ignores_bad_dates(self):
        response = self.client.get(reverse("finance:income_list"), {"from": "ayer"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["filters"]["from"], "")
        self.assertEqual(len(response.context["incomes"]), 2)

    def test_income_export_csv_respects_date_range(self):
        response = self.client.get(reverse("finance:income_export_csv"), {"from": "2026-02-01"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/csv")
        content = response.content.decode("utf-8")
        self.assertIn(self.transfer.income_number, content)
        self.assertNotIn(self.cash.income_number, content)
        self.assertIn("10000.00", content)

    def test_collection_list_shows_open_collections_only_by_default(self):
        development = Factory.development(name="Lomas Altas")
        payment = Factory.payment(development=development, period=date(2026, 3, 1))
        queue_payment_collection(payment)
        PendingCollection.objects.filter(related_id=payment.pk).update(status=PendingCollection.Status.CANCELLED)
        other = Factory.payment(development=development, period=date(2026, 4, 1))
        queue_payment_collection(other)

        response = self.client.get(reverse("finance:collection_list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context["rows"]), 1)

        response = self.client.get(reverse("finance:collection_list"), {"show": "all"})
        self.assertEqual(len(response.context["rows"]), 2)
