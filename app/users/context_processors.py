from django.utils import timezone


def due_lead_reminders_count(request):
    """Agrega el conteo de recordatorios de prospectos vencidos al contexto de todos los templates."""
    if not request.user.is_authenticated:
        return {"due_lead_reminders_count": 0}
    from developments.models import DevelopmentLead

    count = DevelopmentLead.objects.reminders_due(timezone.localdate()).count()
    return {"due_lead_reminders_count": count}
