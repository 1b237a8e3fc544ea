"""
Seguimiento de prospectos: historial de comentarios y conversión a contrato.
"""
import logging

from django.db import transaction
from django.utils import timezone

from developments.models import AccessDevelopment, DevelopmentLead, DevelopmentLog, LeadComment

logger = logging.getLogger(__name__)


class LeadNotConvertible(Exception):
    pass


def add_comment(lead, text, *, user=None, description="Comentario agregado"):
    """Registra un comentario en el historial y actualiza la última actividad."""
    text = (text or "").strip()
    if not text:
        return None
    comment = LeadComment.objects.create(lead=lead, comment=text, created_by=user)
    lead.comments = text
    lead.touch(description)
    lead.save(update_fields=["comments", "last_activity_at", "last_activity_description", "updated_at"])
    return comment


@transaction.atomic
def save_lead(lead, *, user=None, comment=""):
    """Alta o edición de un prospecto desde el formulario."""
    is_new = lead.pk is None
    if is_new:
        lead.created_by = user
    lead.touch("Prospecto creado" if is_new else "Prospecto actualizado")
    if comment:
        lead.comments = comment.strip()
    lead.save()
    if comment and comment.strip():
        LeadComment.objects.create(lead=lead, comment=comment.strip(), created_by=user)
    return lead


def delete_lead(lead):
    name = lead.name
    lead.delete()
    logger.info("Prospecto eliminado: %s", name)


def development_initial_from_lead(lead) -> dict:
    """Valores iniciales del formulario de contrato a partir del prospecto."""
    initial = {
        "name": lead.name,
        "address": lead.address,
        "contact_name": lead.contact_name,
        "contact_phone": lead.contact_phone,
        "contact_email": lead.contact_email,
        "has_investor": lead.has_investor,
        "investor_name": lead.investor_name,
        "contract_start_date": timezone.localdate(),
    }
    if lead.monthly_payment_proposed:
        initial["monthly_payment"] = lead.monthly_payment_proposed
    if lead.investor_amount:
        initial["investor_amount"] = lead.investor_amount
    if lead.contract_months:
        initial["contract_duration_months"] = lead.contract_months
    return initial


@transaction.atomic
def convert_lead(lead, development, *, user=None):
    """
    Cierra el prospecto como aceptado y lo liga al contrato ya creado.
    """
    lead.status = (
        DevelopmentLead.objects.select_for_update().values_list("status", flat=True).get(pk=lead.pk)
    )
    if not lead.can_convert:
        raise LeadNotConvertible(
            f"El prospecto está {lead.get_status_display().lower()} y no puede convertirse."
        )
    if development.lead_id != lead.pk:
        AccessDevelopment.objects.filter(pk=development.pk).update(lead=lead)
        development.lead = lead

    lead.status = DevelopmentLead.Status.ACEPTADO
    lead.reminder_date = None
    lead.touch("Convertido a contrato")
    lead.save()
    LeadComment.objects.create(
        lead=lead,
        comment=f"Convertido a contrato: {development.name}",
        created_by=user,
    )
    DevelopmentLog.objects.create(
        development=development,
        action=DevelopmentLog.Action.NOTE,
        message=f"Contrato originado del prospecto {lead.name}.",
        metadata={"lead_id": lead.pk},
        created_by=user,
    )
    logger.info("Prospecto %s convertido a contrato %s", lead.pk, development.pk)
    return lead
