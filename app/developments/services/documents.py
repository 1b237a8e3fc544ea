"""
Avisos de pago y recibos de mensualidades: numeración, contexto, PDF y envío por correo.
"""
import logging
from io import BytesIO

from django.conf import settings
from django.core.mail import EmailMessage
from django.template.loader import render_to_string
from django.utils import timezone
from weasyprint import HTML

from core.formatting import format_money, month_label
from finance.models import PaymentMethod

logger = logging.getLogger(__name__)

NOTICE = "notice"
RECEIPT = "receipt"

DOCUMENT_TEMPLATES = {
    NOTICE: "developments/pdf/payment_notice.html",
    RECEIPT: "developments/pdf/payment_receipt.html",
}


class MissingContactEmail(Exception):
    pass


def _short_id(payment) -> str:
    return str(payment.pk).replace("-", "")[:6].upper()


def notice_number(payment) -> str:
    return f"AVI-{payment.due_date:%Y%m}-{_short_id(payment)}"


def receipt_number(payment) -> str:
    paid_day = timezone.localdate(payment.paid_at) if payment.paid_at else payment.due_date
    return f"REC-{paid_day:%Y%m}-{_short_id(payment)}"


def payment_method_label(code) -> str:
    if not code:
        return "-"
    try:
        return PaymentMethod(code).label
    except ValueError:
        return code


def _company():
    return {
        "name": getattr(settings, "COMPANY_NAME", ""),
        "address": getattr(settings, "COMPANY_ADDRESS", ""),
        "phone": getattr(settings, "COMPANY_PHONE", ""),
        "email": getattr(settings, "COMPANY_EMAIL", ""),
    }


def build_notice_context(payment, today) -> dict:
    development = payment.development
    return {
        "kind": NOTICE,
        "number": notice_number(payment),
        "payment": payment,
        "development": development,
        "company": _company(),
        "period_label": month_label(payment.period),
        "amount_label": format_money(payment.amount),
        "is_overdue": payment.is_overdue(today),
        "issued_on": today,
    }


def build_receipt_context(payment) -> dict:
    development = payment.development
    return {
        "kind": RECEIPT,
        "number": receipt_number(payment),
        "payment": payment,
        "development": development,
        "company": _company(),
        "period_label": month_label(payment.period),
        "amount_label": format_money(payment.amount),
        "method_label": payment_method_label(payment.payment_method),
        "paid_on": timezone.localdate(payment.paid_at) if payment.paid_at else None,
    }


def build_document_context(payment, kind, today=None) -> dict:
    if kind == NOTICE:
        return build_notice_context(payment, today or timezone.localdate())
    if kind == RECEIPT:
        if not payment.is_paid:
            raise ValueError("Solo se emiten recibos de mensualidades pagadas.")
        return build_receipt_context(payment)
    raise ValueError(f"Tipo de documento desconocido: {kind}")


def render_document_pdf(template_name, context, base_url) -> bytes:
    html_content = render_to_string(template_name, context)
    buffer = BytesIO()
    HTML(string=html_content, base_url=base_url).write_pdf(target=buffer)
    return buffer.getvalue()


def render_payment_document(payment, kind, base_url, today=None):
    """Devuelve (nombre_de_archivo, bytes_pdf)."""
    context = build_document_context(payment, kind, today)
    pdf = render_document_pdf(DOCUMENT_TEMPLATES[kind], context, base_url)
    return f"{context['number']}.pdf", pdf


def send_payment_document(payment, kind, base_url, today=None):
    development = payment.development
    if not development.contact_email:
        raise MissingContactEmail(f"{development.name} no tiene correo de contacto.")

    filename, pdf = render_payment_document(payment, kind, base_url, today)
    context = build_document_context(payment, kind, today)
    subject_prefix = "Aviso de pago" if kind == NOTICE else "Recibo de pago"
    message = EmailMessage(
        subject=f"{subject_prefix} {context['number']} - {development.name}",
        body=render_to_string("developments/email/payment_document.txt", context),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[development.contact_email],
    )
    message.attach(filename, pdf, "application/pdf")
    message.send(fail_silently=False)

    logger.info("%s %s enviado a %s", subject_prefix, context["number"], development.contact_email)
    return context["number"]
