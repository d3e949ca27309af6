from django.core.management.base import BaseCommand
from inventory.idempotency import cleanup_expired_keys


class Command(BaseCommand):
    help = "Delete expired idempotency key records based on expires_at"

    def handle(self, *args, **options):
        count = cleanup_expired_keys()
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} expired idempotency keys."))
