"""
Management command: mirror completed + paid orders that have no ledger sale,
and finish orders whose commit failed after their sale was recorded.

Usage:
    python manage.py reconcile_fulfillment
    python manage.py reconcile_fulfillment --dry-run
"""

from django.core.management.base import BaseCommand

from fulfillment.reconcile import reconcile


class Command(BaseCommand):
    help = "Re-affirm completed + paid orders missing from the POS ledger"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report; do not touch either database",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        report = reconcile(dry_run=dry_run)

        self.stdout.write(f"Unmirrored orders: {len(report.unmirrored)}")
        for order_id in report.unmirrored:
            self.stdout.write(f"  {order_id}")

        self.stdout.write(f"Uncommitted orders: {len(report.uncommitted)}")
        for order_id in report.uncommitted:
            self.stdout.write(f"  {order_id}")

        if report.stranded:
            self.stdout.write(
                self.style.WARNING(
                    f"Ledger sales whose order is no longer completed + paid: {len(report.stranded)}"
                )
            )
            for ref in report.stranded:
                self.stdout.write(f"  {ref}")

        if dry_run:
            self.stdout.write(self.style.NOTICE("Dry run: nothing written"))
            return

        self.stdout.write(self.style.SUCCESS(f"Mirrored: {len(report.mirrored)}"))
        if report.failed:
            self.stdout.write(self.style.ERROR(f"Failed: {', '.join(report.failed)}"))
