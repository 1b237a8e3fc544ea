"""
Corrida diaria de fraccionamientos: genera las órdenes de servicio programadas
vencidas y registra en cobranza pendiente las mensualidades exigibles.

Uso:
    python manage.py process_access_orders
    python manage.py process_access_orders --date 2026-03-05
"""
from datetime import date

from django.core.management.base import BaseCommand, CommandError

from developments.services.processing import process_access_orders


class Command(BaseCommand):
    help = (
        "Genera las órdenes de servicio programadas hasta la fecha y abre la "
        "cobranza pendiente de las mensualidades vencidas de contratos activos."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            type=str,
            default=None,
            help="Fecha a procesar (YYYY-MM-DD). Por omisión, hoy.",
        )
        parser.add_argument(
            "--verbose-details",
            action="store_true",
            help="Imprime el detalle de cada orden y cobranza generada.",
        )

    def handle(self, *args, **options):
        today = None
        if options["date"]:
            try:
                today = date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError(f"Fecha inválida: {options['date']}")

        result = process_access_orders(today=today)

        if options["verbose_details"]:
            for line in result.details:
                self.stdout.write(f"  {line}")
        for error in result.errors:
            self.stderr.write(self.style.ERROR(f"  {error}"))

        summary = (
            f"Órdenes generadas: {result.orders_processed} | "
            f"Omitidas: {result.orders_skipped} | "
            f"Cobranzas: {result.payments_generated} | "
            f"Errores: {len(result.errors)}"
        )
        if result.errors:
            self.stdout.write(self.style.WARNING(summary))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
