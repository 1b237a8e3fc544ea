import csv
from datetime import date
from decimal import Decimal

from django.db.models import Sum
from django.http import HttpResponse
from django.shortcuts import render
from django.utils import timezone

from .models import AccountType, Income, PaymentMethod, PendingCollection


def _filtered_incomes(request):
    incomes = Income.objects.select_related("created_by", "development_payment__development")

    date_from = request.GET.get("from", "")
    date_to = request.GET.get("to", "")
    method = request.GET.get("method", "")
    account = request.GET.get("account", "")

    if date_from:
        try:
            incomes = incomes.filter(income_date__gte=date.fromisoformat(date_from))
        except ValueError:
            date_from = ""
    if date_to:
        try:
            incomes = incomes.filter(income_date__lte=date.fromisoformat(date_to))
        except ValueError:
            date_to = ""
    if method:
        incomes = incomes.filter(payment_method=method)
    if account:
        incomes = incomes.filter(account_type=account)

    filters = {"from": date_from, "to": date_to, "method": method, "account": account}
    return incomes, filters


def income_list(request):
    incomes, filters = _filtered_incomes(request)
    completed = incomes.filter(status=Income.Status.COMPLETADO)
    return render(request, "finance/income_list.html", {
        "incomes": incomes,
        "total_income": completed.aggregate(t=Sum("amount"))["t"] or Decimal("0"),
        "total_fiscal": completed.filter(account_type=AccountType.FISCAL).aggregate(t=Sum("amount"))["t"] or Decimal("0"),
        "total_no_fiscal": completed.filter(account_type=AccountType.NO_FISCAL).aggregate(t=Sum("amount"))["t"] or Decimal("0"),
        "payment_methods": PaymentMethod.choices,
        "account_types": AccountType.choices,
        "filters": filters,
    })


def income_export_csv(request):
    incomes, _filters = _filtered_incomes(request)

    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="ingresos.csv"'
    writer = csv.writer(response)
    writer.writerow([
        "Número",
        "Fecha",
        "Descripción",
        "Categoría",
        "Forma de pago",
        "Cuenta",
        "Estado",
        "Valor",
    ])
    for income in incomes:
        writer.writerow([
            income.income_number,
            income.income_date.strftime("%Y-%m-%d"),
            income.description,
            income.get_category_display(),
            income.get_payment_method_display(),
            income.get_account_type_display(),
            income.get_status_display(),
            f"{income.amount:.2f}",
        ])
    return response


def collection_list(request):
    today = timezone.localdate()
    show = request.GET.get("show", "open")

    collections = PendingCollection.objects.all()
    if show == "open":
        collections = collections.open()

    rows = [
        {"collection": c, "is_overdue": c.is_overdue(today)}
        for c in collections
    ]
    open_qs = PendingCollection.objects.open()
    return render(request, "finance/collection_list.html", {
        "rows": rows,
        "show": show,
        "total_open": open_qs.aggregate(t=Sum("amount"))["t"] or Decimal("0"),
        "overdue_count": open_qs.filter(due_date__lt=today).count(),
    })
