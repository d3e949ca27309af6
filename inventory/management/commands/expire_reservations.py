from django.core.management.base import BaseCommand
from inventory.reservations import expire_due_reservations


class Command(BaseCommand):
    help = "Expire ACTIVE stock reservations past their expiry_date and free their claims."

    def handle(self, *args, **options):
        count = expire_due_reservations()
        self.stdout.write(self.style.SUCCESS(f"Expired reservations: {count}"))
