from django.core.management.base import BaseCommand

from users.models import RoleCode, RolePermission
from users.permissions import list_permission_candidates, PERMISSION_LABELS


COMMON_KEYS = {"users:dashboard"}

# Cobranza: cobros, avisos, recibos e ingresos
COBRANZA_KEYS = {
    "developments:development_list",
    "developments:development_detail",
    "developments:development_schedule_pdf",
    "developments:payment_list",
    "developments:payment_register",
    "developments:notice_list",
    "developments:notice_pdf",
    "developments:notice_send",
    "developments:receipt_list",
    "developments:receipt_pdf",
    "developments:receipt_send",
    "developments:investor_overview",
    "finance:income_list",
    "finance:income_export_csv",
    "finance:collection_list",
    "orders:client_list",
}

# Ventas: embudo de prospectos, cotizador y conversión a contrato
VENTAS_KEYS = {
    "developments:lead_list",
    "developments:lead_create",
    "developments:lead_detail",
    "developments:lead_edit",
    "developments:lead_comment_add",
    "developments:lead_convert",
    "developments:quote_calculator",
    "developments:quote_save_lead",
    "developments:schedule_preview",
    "developments:development_list",
    "developments:development_detail",
    "orders:client_list",
}

# Técnico: solo órdenes de servicio
TECNICO_KEYS = {
    "orders:order_list",
    "orders:order_detail",
}


def _grant(role_code, key, label, path):
    RolePermission.objects.update_or_create(
        role_code=role_code,
        permission_key=key,
        defaults={"allowed": True, "label": label, "path": path},
    )


class Command(BaseCommand):
    help = "Carga una matriz inicial de permisos por rol (fail-closed safe defaults)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Elimina permisos existentes antes de cargar la matriz.",
        )

    def handle(self, *args, **options):
        if options["reset"]:
            RolePermission.objects.all().delete()
            self.stdout.write(self.style.WARNING("Permisos existentes eliminados."))

        role_matrix = {
            RoleCode.COBRANZA: COMMON_KEYS | COBRANZA_KEYS,
            RoleCode.VENTAS: COMMON_KEYS | VENTAS_KEYS,
            RoleCode.TECNICO: COMMON_KEYS | TECNICO_KEYS,
        }

        for candidate in list_permission_candidates():
            key = candidate.key
            label = PERMISSION_LABELS.get(key, candidate.label)

            # ADMIN y GERENTE: acceso total funcional (no superuser)
            _grant(RoleCode.ADMIN, key, label, candidate.path)
            _grant(RoleCode.GERENTE, key, label, candidate.path)

            for role_code, keys in role_matrix.items():
                if key in keys:
                    _grant(role_code, key, label, candidate.path)

        total = RolePermission.objects.filter(allowed=True).count()
        self.stdout.write(self.style.SUCCESS(f"Permisos cargados: {total}"))
