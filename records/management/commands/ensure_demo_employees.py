# records/management/commands/ensure_demo_employees.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from records.models import Barangay, District, Employee

DEMO_SET = [
    ("admin1", "admin"),
    ("doctor1", "doctor"),
    ("nurse1", "nurse"),
    ("records1", "records_officer"),
    ("bhw1", "bhw"),
    ("dho1", "dho"),
    ("pharm1", "pharmacist"),
]


class Command(BaseCommand):
    help = "Ensure one demo employee per role exists (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="demo12345", help="Password set on every demo account")

    def handle(self, *args, **opts):
        district, _ = District.objects.get_or_create(name="District 1")
        barangay, _ = Barangay.objects.get_or_create(name="Barangay 1", defaults={"district": district})
        password = make_password(opts["password"])

        for username, role in DEMO_SET:
            fields = {
                "role": role,
                "password": password,
                "is_active": True,
                "assigned_barangay": barangay if role == "bhw" else None,
                "assigned_district": district if role == "dho" else None,
            }
            u, created = Employee.objects.get_or_create(username=username, defaults=fields)
            if not created:
                # reset password, role and assignment on existing accounts
                for key, value in fields.items():
                    setattr(u, key, value)
                u.save(update_fields=list(fields))
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo employees ensured."))
