"""Batch consistency audit: python manage.py audit_ledger [--json] [--fail-on-findings]"""

import json

from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder

from ledger.handlers.serializers import AuditReportSerializer
from ledger.services import build_services


class Command(BaseCommand):
    help = "Report orphaned seat sales and drift between stored and recomputed order totals."

    def add_arguments(self, parser):
        parser.add_argument("--json", action="store_true", help="Print the full report as JSON.")
        parser.add_argument(
            "--fail-on-findings",
            action="store_true",
            help="Exit with an error when the report is not clean.",
        )

    def handle(self, *args, **options):
        report = build_services().auditor.run()

        if options["json"]:
            data = AuditReportSerializer(report).data
            self.stdout.write(json.dumps(data, cls=DjangoJSONEncoder, indent=2))
        else:
            for name, count in report.summary().items():
                line = f"{name}: {count}"
                self.stdout.write(self.style.WARNING(line) if count else line)
            if report.is_clean:
                self.stdout.write(self.style.SUCCESS("Ledger is consistent."))

        if options["fail_on_findings"] and not report.is_clean:
            raise CommandError(f"Ledger audit found {report.finding_count} issue(s)")
