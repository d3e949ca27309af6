from django.core.management.base import BaseCommand, CommandError
from inventory.selectors import verify_ledger


class Command(BaseCommand):
    help = "Replay the transaction log for every SKU-location and compare with stored balances."

    def add_arguments(self, parser):
        parser.add_argument("--product", dest="product_id", help="Only check this product UUID")
        parser.add_argument("--warehouse", dest="warehouse_id", help="Only check this warehouse UUID")

    def handle(self, *args, **options):
        checks = verify_ledger(product_id=options.get("product_id"), warehouse_id=options.get("warehouse_id"))
        broken = [c for c in checks if not c.ok]
        for check in broken:
            self.stderr.write(
                f"Balance {check.balance_id}: recorded {check.recorded}, replayed {check.replayed}"
                f" (first divergence at sequence {check.diverged_at})"
            )
        if broken:
            raise CommandError(f"{len(broken)} of {len(checks)} balances diverge from the ledger")
        self.stdout.write(self.style.SUCCESS(f"Verified {len(checks)} balances against the ledger."))
