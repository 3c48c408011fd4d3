from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction

from hms.config import get_clinic_config
from hms.models import DoctorAvailability, User

TEST_SET = [
    ("doctor@clinic.test", User.ROLE_DOCTOR, "Asha", "Rao"),
    ("reception@clinic.test", User.ROLE_RECEPTIONIST, "Ravi", "Kumar"),
    ("admin@clinic.test", User.ROLE_ADMIN, "Meera", "Shah"),
    ("subadmin@clinic.test", User.ROLE_SUB_ADMIN, "Kiran", "Das"),
    ("master@clinic.test", User.ROLE_MASTER_ADMIN, "Nila", "Iyer"),
]


class Command(BaseCommand):
    help = "Ensure one test user per role exists (idempotent) and give the test doctor a weekly schedule."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="Clinic@12345", help="password set on every test user")

    @transaction.atomic
    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        for email, role, first, last in TEST_SET:
            u, created = User.objects.get_or_create(
                email=email,
                defaults={
                    "username": email, "role": role, "password": password, "is_active": True,
                    "first_name": first, "last_name": last,
                },
            )
            if not created:
                # role is otherwise immutable; the seed command is the one place that resets it
                u.password = password
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role})"))

        doctor = User.objects.get(email=TEST_SET[0][0])
        if not DoctorAvailability.objects.filter(doctor=doctor).exists():
            config = get_clinic_config()
            DoctorAvailability.objects.bulk_create([
                DoctorAvailability(doctor=doctor, day_of_week=day, start_time=w.start, end_time=w.end)
                for day in sorted(config.default_working_days)
                for w in config.default_shifts
            ])
            self.stdout.write(self.style.SUCCESS(f"ok: weekly schedule for {doctor.email}"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
