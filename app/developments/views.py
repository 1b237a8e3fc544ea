import logging
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation

from django.contrib import messages
from django.core.mail import BadHeaderError
from django.db import transaction
from django.db.models import Q, Sum
from django.http import Http404, HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.http import require_POST

from .forms import (
    DevelopmentForm,
    DevelopmentStatusForm,
    LeadCommentForm,
    LeadForm,
    PaymentRegisterForm,
    QuoteConfigForm,
    QuoteForm,
)
from .models import (
    AccessDevelopment,
    DevelopmentLead,
    DevelopmentLog,
    DevelopmentPayment,
    InvestorLoan,
)
from .services.amortization import AmortizationPlanner, InvalidFinancingTerms
from .services.contracts import change_status, create_development, update_development
from .services.documents import (
    NOTICE,
    RECEIPT,
    MissingContactEmail,
    notice_number,
    receipt_number,
    render_document_pdf,
    render_payment_document,
    send_payment_document,
)
from .services.leads import (
    LeadNotConvertible,
    add_comment,
    convert_lead,
    delete_lead,
    development_initial_from_lead,
    save_lead,
)
from .services.ledger import PaymentNotCollectible, investor_totals, loan_progress, register_payment
from .services.quotes import QuoteInputs, calculate_quote, save_quote_as_lead
from .services.schedule import ScheduleGenerator, sync_development_schedule

logger = logging.getLogger(__name__)


def _user_or_none(request):
    return request.user if request.user.is_authenticated else None


def _base_url(request):
    return request.build_absolute_uri("/")


def _pdf_response(filename, pdf, inline=False):
    response = HttpResponse(pdf, content_type="application/pdf")
    disposition = "inline" if inline else "attachment"
    response["Content-Disposition"] = f'{disposition}; filename="{filename}"'
    return response


def _development_filter(request):
    raw = request.GET.get("development", "")
    try:
        return str(uuid.UUID(raw)) if raw else ""
    except ValueError:
        return ""


# ---------------------------------------------------------------------------
# Fraccionamientos
# ---------------------------------------------------------------------------

def development_list(request):
    q = request.GET.get("q", "").strip()
    status = request.GET.get("status", "")
    developments = AccessDevelopment.objects.select_related("client", "investor_loan")
    if q:
        developments = developments.filter(
            Q(name__icontains=q) | Q(contact_name__icontains=q) | Q(investor_name__icontains=q)
        )
    if status in AccessDevelopment.Status.values:
        developments = developments.filter(status=status)

    today = timezone.localdate()
    overdue_ids = set(
        DevelopmentPayment.objects.overdue(today)
        .filter(development__in=developments)
        .values_list("development_id", flat=True)
    )
    return render(request, "developments/development_list.html", {
        "developments": developments,
        "overdue_ids": overdue_ids,
        "q": q,
        "status": status,
        "status_choices": AccessDevelopment.Status.choices,
    })


def development_create(request):
    lead = None
    lead_id = request.GET.get("lead") or request.POST.get("lead")
    if lead_id:
        lead = get_object_or_404(DevelopmentLead, pk=lead_id)
        if not lead.can_convert:
            messages.error(request, "Este prospecto ya está cerrado y no puede convertirse.")
            return redirect("developments:lead_detail", pk=lead.pk)

    if request.method == "POST":
        form = DevelopmentForm(request.POST)
        if form.is_valid():
            try:
                with transaction.atomic():
                    development = create_development(
                        form.save(commit=False),
                        user=_user_or_none(request),
                        lead=lead,
                    )
                    if lead:
                        convert_lead(lead, development, user=_user_or_none(request))
            except (InvalidFinancingTerms, LeadNotConvertible) as exc:
                form.add_error(None, str(exc))
            else:
                messages.success(request, f"Contrato de {development.name} creado.")
                return redirect("developments:development_detail", pk=development.pk)
    else:
        initial = development_initial_from_lead(lead) if lead else {"contract_start_date": timezone.localdate()}
        form = DevelopmentForm(initial=initial)

    return render(request, "developments/development_form.html", {
        "form": form,
        "lead": lead,
        "is_edit": False,
    })


def development_detail(request, pk):
    development = get_object_or_404(
        AccessDevelopment.objects.select_related("client", "lead", "installation_order"),
        pk=pk,
    )
    today = timezone.localdate()
    payments = list(development.payments.select_related("income").order_by("due_date"))
    loan = InvestorLoan.objects.filter(development=development).first()

    paid_total = sum((p.amount for p in payments if p.is_paid), Decimal("0"))
    open_total = sum(
        (p.amount for p in payments if p.status in DevelopmentPayment.OPEN_STATUSES), Decimal("0")
    )
    return render(request, "developments/development_detail.html", {
        "development": development,
        "payments": payments,
        "scheduled_orders": development.scheduled_orders.select_related("order"),
        "logs": development.logs.select_related("created_by")[:30],
        "loan": loan,
        "loan_progress": loan_progress(loan) if loan else None,
        "paid_total": paid_total,
        "open_total": open_total,
        "overdue_count": sum(1 for p in payments if p.is_overdue(today)),
        "status_form": DevelopmentStatusForm(initial={"status": development.status}),
        "today": today,
    })


def development_edit(request, pk):
    development = get_object_or_404(AccessDevelopment, pk=pk)
    if request.method == "POST":
        form = DevelopmentForm(request.POST, instance=development)
        if form.is_valid():
            try:
                update_development(form.save(commit=False), user=_user_or_none(request))
            except InvalidFinancingTerms as exc:
                form.add_error(None, str(exc))
            else:
                messages.success(request, "Contrato actualizado.")
                return redirect("developments:development_detail", pk=development.pk)
    else:
        form = DevelopmentForm(instance=development)

    return render(request, "developments/development_form.html", {
        "form": form,
        "development": development,
        "is_edit": True,
    })


@require_POST
def development_status(request, pk):
    development = get_object_or_404(AccessDevelopment, pk=pk)
    form = DevelopmentStatusForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Estado no válido.")
        return redirect("developments:development_detail", pk=development.pk)

    change_status(development, form.cleaned_data["status"], user=_user_or_none(request))
    messages.success(request, f"Estado actualizado a {development.get_status_display()}.")
    return redirect("developments:development_detail", pk=development.pk)


@require_POST
def development_sync_schedule(request, pk):
    development = get_object_or_404(AccessDevelopment, pk=pk)
    result = sync_development_schedule(development)
    DevelopmentLog.objects.create(
        development=development,
        action=DevelopmentLog.Action.SCHEDULE,
        message=(
            f"Cronograma revisado: {result.payments_created} mensualidades y "
            f"{result.orders_created} órdenes nuevas."
        ),
        metadata={"payments_created": result.payments_created, "orders_created": result.orders_created},
        created_by=_user_or_none(request),
    )
    if result.payments_created or result.orders_created:
        messages.success(
            request,
            f"Se agregaron {result.payments_created} mensualidades y {result.orders_created} órdenes.",
        )
    else:
        messages.info(request, "El cronograma ya estaba completo.")
    return redirect("developments:development_detail", pk=development.pk)


def development_schedule_pdf(request, pk):
    development = get_object_or_404(AccessDevelopment, pk=pk)
    payments = development.payments.order_by("due_date")
    context = {
        "development": development,
        "payments": payments,
        "today": timezone.localdate(),
        "total": payments.aggregate(t=Sum("amount"))["t"] or Decimal("0"),
    }
    pdf = render_document_pdf("developments/pdf/schedule.html", context, _base_url(request))
    return _pdf_response(f"cronograma-{development.pk}.pdf", pdf)


def _parse_decimal(value, default="0"):
    try:
        number = Decimal(str(value or default))
    except InvalidOperation:
        raise InvalidFinancingTerms("Captura montos numéricos válidos.")
    if not number.is_finite():
        raise InvalidFinancingTerms("Captura montos numéricos válidos.")
    return number


def _parse_int(value, default):
    try:
        return int(value or default)
    except (TypeError, ValueError):
        raise InvalidFinancingTerms("Captura valores enteros válidos.")


def schedule_preview(request):
    """Vista previa (parcial htmx) del cronograma antes de guardar el contrato."""
    params = request.GET
    today = timezone.localdate()
    ctx = {"today": today}
    try:
        start_raw = params.get("contract_start_date")
        start = date.fromisoformat(start_raw) if start_raw else today
        planner = AmortizationPlanner(
            monthly_payment=_parse_decimal(params.get("monthly_payment")),
            investor_amount=_parse_decimal(params.get("investor_amount")),
            profit_percent=_parse_decimal(params.get("investor_profit_percent")),
            has_investor=params.get("has_investor") in ("on", "true", "1"),
        )
        generator = ScheduleGenerator(
            planner=planner,
            start_date=start,
            duration_months=_parse_int(params.get("contract_duration_months"), 1),
            payment_day=_parse_int(params.get("payment_day"), 1),
            service_day=_parse_int(params.get("service_day"), 1),
        )
        ctx.update({
            "planner": planner,
            "drafts": generator.payments(today),
            "earning_start": planner.earning_start_date(start),
        })
    except (InvalidFinancingTerms, ValueError) as exc:
        ctx["error"] = str(exc)
    return render(request, "developments/partials/schedule_preview.html", ctx)


# ---------------------------------------------------------------------------
# Cobros
# ---------------------------------------------------------------------------

def is_visible_in_collections(payment, month_start) -> bool:
    """
    En cobros solo aparecen periodos del mes actual o anteriores, dentro del
    contrato, y que no se hayan generado después de su fecha límite.
    """
    if payment.period > month_start:
        return False
    if payment.is_retroactive():
        return False
    contract_month = payment.development.contract_start_date.replace(day=1)
    return payment.period.replace(day=1) >= contract_month


def payment_list(request):
    today = timezone.localdate()
    month_start = today.replace(day=1)
    development_id = _development_filter(request)
    status = request.GET.get("status", "")

    payments = (
        DevelopmentPayment.objects.select_related("development")
        .exclude(status=DevelopmentPayment.Status.CANCELLED)
        .filter(period__lte=month_start)
        .order_by("-period", "development__name")
    )
    if development_id:
        payments = payments.filter(development_id=development_id)
    if status == "paid":
        payments = payments.filter(status=DevelopmentPayment.Status.PAID)
    elif status in ("pending", "overdue"):
        payments = payments.open()

    rows = [p for p in payments if is_visible_in_collections(p, month_start)]
    if status == "overdue":
        rows = [p for p in rows if p.is_overdue(today)]
    elif status == "pending":
        rows = [p for p in rows if not p.is_overdue(today)]

    return render(request, "developments/payment_list.html", {
        "payments": rows,
        "total_pending": sum((p.amount for p in rows if not p.is_paid), Decimal("0")),
        "total_paid": sum((p.amount for p in rows if p.is_paid), Decimal("0")),
        "developments": AccessDevelopment.objects.order_by("name"),
        "development_id": development_id,
        "status": status,
        "today": today,
    })


def payment_register(request, pk):
    payment = get_object_or_404(DevelopmentPayment.objects.select_related("development"), pk=pk)
    if payment.is_paid:
        messages.info(request, "Esta mensualidad ya está pagada.")
        return redirect("developments:development_detail", pk=payment.development_id)

    if request.method == "POST":
        form = PaymentRegisterForm(request.POST, request.FILES)
        if form.is_valid():
            try:
                income = register_payment(
                    payment,
                    method=form.cleaned_data["payment_method"],
                    reference=form.cleaned_data["payment_reference"],
                    evidence=form.cleaned_data.get("evidence"),
                    user=_user_or_none(request),
                )
            except PaymentNotCollectible as exc:
                messages.error(request, str(exc))
                return redirect("developments:development_detail", pk=payment.development_id)
            messages.success(request, f"Pago registrado ({income.income_number}).")
            next_url = request.POST.get("next")
            if next_url == "payments":
                return redirect("developments:payment_list")
            return redirect("developments:development_detail", pk=payment.development_id)
    else:
        form = PaymentRegisterForm()

    return render(request, "developments/payment_register.html", {
        "payment": payment,
        "form": form,
        "today": timezone.localdate(),
    })


# ---------------------------------------------------------------------------
# Avisos y recibos
# ---------------------------------------------------------------------------

def notice_list(request):
    today = timezone.localdate()
    payments = (
        DevelopmentPayment.objects.open()
        .filter(development__status=AccessDevelopment.Status.ACTIVE)
        .select_related("development")
        .order_by("due_date")
    )
    development_id = _development_filter(request)
    if development_id:
        payments = payments.filter(development_id=development_id)
    return render(request, "developments/notice_list.html", {
        "rows": [(p, notice_number(p)) for p in payments],
        "developments": AccessDevelopment.objects.order_by("name"),
        "development_id": development_id,
        "today": today,
    })


def receipt_list(request):
    payments = (
        DevelopmentPayment.objects.filter(status=DevelopmentPayment.Status.PAID)
        .select_related("development")
        .order_by("-paid_at")
    )
    development_id = _development_filter(request)
    if development_id:
        payments = payments.filter(development_id=development_id)
    return render(request, "developments/receipt_list.html", {
        "rows": [(p, receipt_number(p)) for p in payments],
        "developments": AccessDevelopment.objects.order_by("name"),
        "development_id": development_id,
    })


def _document_pdf(request, pk, kind):
    payment = get_object_or_404(DevelopmentPayment.objects.select_related("development"), pk=pk)
    if kind == RECEIPT and not payment.is_paid:
        raise Http404("La mensualidad no tiene recibo.")
    filename, pdf = render_payment_document(payment, kind, _base_url(request))
    return _pdf_response(filename, pdf, inline=request.GET.get("inline") == "1")


def _document_send(request, pk, kind, redirect_name):
    payment = get_object_or_404(DevelopmentPayment.objects.select_related("development"), pk=pk)
    if kind == RECEIPT and not payment.is_paid:
        raise Http404("La mensualidad no tiene recibo.")
    try:
        number = send_payment_document(payment, kind, _base_url(request))
    except MissingContactEmail as exc:
        messages.error(request, str(exc))
        return redirect(redirect_name)
    except (BadHeaderError, OSError) as exc:
        logger.exception("No se pudo enviar el documento de la mensualidad %s", payment.pk)
        messages.error(request, f"No se pudo enviar el correo: {exc}")
        return redirect(redirect_name)

    DevelopmentLog.objects.create(
        development=payment.development,
        action=DevelopmentLog.Action.DOCUMENT,
        message=f"{number} enviado a {payment.development.contact_email}.",
        metadata={"payment_id": str(payment.pk), "kind": kind},
        created_by=_user_or_none(request),
    )
    messages.success(request, f"{number} enviado a {payment.development.contact_email}.")
    return redirect(redirect_name)


def notice_pdf(request, pk):
    return _document_pdf(request, pk, NOTICE)


@require_POST
def notice_send(request, pk):
    return _document_send(request, pk, NOTICE, "developments:notice_list")


def receipt_pdf(request, pk):
    return _document_pdf(request, pk, RECEIPT)


@require_POST
def receipt_send(request, pk):
    return _document_send(request, pk, RECEIPT, "developments:receipt_list")


# ---------------------------------------------------------------------------
# Inversionistas
# ---------------------------------------------------------------------------

def investor_overview(request):
    loans = list(
        InvestorLoan.objects.filter(development__has_investor=True)
        .select_related("development")
        .order_by("investor_name", "loan_number")
    )
    rows = [{"loan": loan, "progress": loan_progress(loan)} for loan in loans]
    return render(request, "developments/investor_overview.html", {
        "rows": rows,
        "totals": investor_totals(loans),
    })


# ---------------------------------------------------------------------------
# Prospectos
# ---------------------------------------------------------------------------

def lead_list(request):
    q = request.GET.get("q", "").strip()
    status = request.GET.get("status", "")
    today = timezone.localdate()
    leads = DevelopmentLead.objects.all()
    if q:
        leads = leads.filter(Q(name__icontains=q) | Q(contact_name__icontains=q))
    if status in DevelopmentLead.Status.values:
        leads = leads.filter(status=status)
    elif status == "reminders":
        leads = leads.reminders_due(today)
    return render(request, "developments/lead_list.html", {
        "leads": leads,
        "q": q,
        "status": status,
        "status_choices": DevelopmentLead.Status.choices,
        "today": today,
    })


def lead_create(request):
    if request.method == "POST":
        form = LeadForm(request.POST)
        if form.is_valid():
            lead = save_lead(
                form.save(commit=False),
                user=_user_or_none(request),
                comment=form.cleaned_data.get("comment", ""),
            )
            messages.success(request, "Prospecto creado.")
            return redirect("developments:lead_detail", pk=lead.pk)
    else:
        form = LeadForm()
    return render(request, "developments/lead_form.html", {"form": form, "is_edit": False})


def lead_detail(request, pk):
    lead = get_object_or_404(DevelopmentLead, pk=pk)
    return render(request, "developments/lead_detail.html", {
        "lead": lead,
        "comments": lead.comment_history.select_related("created_by"),
        "comment_form": LeadCommentForm(),
        "developments": lead.developments.all(),
        "today": timezone.localdate(),
    })


def lead_edit(request, pk):
    lead = get_object_or_404(DevelopmentLead, pk=pk)
    if request.method == "POST":
        form = LeadForm(request.POST, instance=lead)
        if form.is_valid():
            comment = form.changed_comment()
            save_lead(form.save(commit=False), user=_user_or_none(request), comment=comment)
            messages.success(request, "Prospecto actualizado.")
            return redirect("developments:lead_detail", pk=lead.pk)
    else:
        form = LeadForm(instance=lead)
    return render(request, "developments/lead_form.html", {"form": form, "lead": lead, "is_edit": True})


@require_POST
def lead_delete(request, pk):
    lead = get_object_or_404(DevelopmentLead, pk=pk)
    delete_lead(lead)
    messages.success(request, "Prospecto eliminado.")
    return redirect("developments:lead_list")


@require_POST
def lead_comment_add(request, pk):
    lead = get_object_or_404(DevelopmentLead, pk=pk)
    form = LeadCommentForm(request.POST)
    if form.is_valid():
        add_comment(lead, form.cleaned_data["comment"], user=_user_or_none(request))
        form = LeadCommentForm()
    if request.htmx:
        return render(request, "developments/partials/lead_comments.html", {
            "lead": lead,
            "comments": lead.comment_history.select_related("created_by"),
            "comment_form": form,
        })
    return redirect("developments:lead_detail", pk=lead.pk)


def lead_convert(request, pk):
    lead = get_object_or_404(DevelopmentLead, pk=pk)
    if not lead.can_convert:
        messages.error(request, f"El prospecto está {lead.get_status_display().lower()} y no puede convertirse.")
        return redirect("developments:lead_detail", pk=lead.pk)
    return redirect(f"{reverse('developments:development_create')}?lead={lead.pk}")


# ---------------------------------------------------------------------------
# Cotizador
# ---------------------------------------------------------------------------

def _quote_inputs(form):
    return QuoteInputs(
        vehicular_gates_single=form.cleaned_data["vehicular_gates_single"],
        vehicular_gates_double=form.cleaned_data["vehicular_gates_double"],
        pedestrian_doors=form.cleaned_data["pedestrian_doors"],
        controlled_exits=form.cleaned_data["controlled_exits"],
        num_houses=form.cleaned_data["num_houses"],
    )


def quote_calculator(request):
    lead = None
    lead_id = request.GET.get("lead")
    if lead_id:
        lead = get_object_or_404(DevelopmentLead, pk=lead_id)

    breakdown = None
    if "num_houses" in request.GET:
        form = QuoteForm(request.GET)
        if form.is_valid():
            breakdown = calculate_quote(_quote_inputs(form))
    else:
        form = QuoteForm(initial=QuoteForm.initial_from_lead(lead) if lead else None)
        if lead:
            breakdown = calculate_quote(QuoteInputs.from_lead(lead))

    template = (
        "developments/partials/quote_breakdown.html" if request.htmx
        else "developments/quote_calculator.html"
    )
    return render(request, template, {"form": form, "breakdown": breakdown, "lead": lead})


@require_POST
def quote_save_lead(request):
    lead = None
    lead_id = request.POST.get("lead")
    if lead_id:
        lead = get_object_or_404(DevelopmentLead, pk=lead_id)

    form = QuoteForm(request.POST)
    if not form.is_valid():
        return render(request, "developments/quote_calculator.html", {"form": form, "breakdown": None, "lead": lead})

    inputs = _quote_inputs(form)
    breakdown = calculate_quote(inputs)
    if breakdown is None:
        messages.error(request, "Ingresa el número de casas para calcular la cotización.")
        return render(request, "developments/quote_calculator.html", {"form": form, "breakdown": None, "lead": lead})

    lead = save_quote_as_lead(form.contact_data(), inputs, breakdown, lead=lead, user=_user_or_none(request))
    messages.success(request, "Cotización guardada en el prospecto.")
    return redirect("developments:lead_detail", pk=lead.pk)


def quote_config(request):
    if request.method == "POST":
        form = QuoteConfigForm(request.POST)
        if form.is_valid():
            changed = form.save()
            messages.success(request, f"Configuración guardada ({len(changed)} cambios).")
            return redirect("developments:quote_config")
    else:
        form = QuoteConfigForm()
    return render(request, "developments/quote_config.html", {"form": form})
