from django.core.management.base import BaseCommand

from records.services.expiry import sweep_expired_referrals


class Command(BaseCommand):
    help = "Cancel active/pending referrals older than REFERRAL_EXPIRY_HOURS."

    def handle(self, *args, **options):
        count = sweep_expired_referrals()
        self.stdout.write(self.style.SUCCESS(f"Expired referrals cancelled: {count}"))
