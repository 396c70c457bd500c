from django.core.management.base import BaseCommand

from clinic.models import User

PASSWORD = "password123"
DEMO_SET = [
    ("admin@example.com", "admin", {"first_name": "Admin", "last_name": "User", "is_staff": True}),
    ("doctor@example.com", "doctor", {"first_name": "John", "last_name": "Smith",
                                      "specialization": "Cardiology", "license_number": "MD-10001"}),
    ("patient@example.com", "patient", {"first_name": "Jane", "last_name": "Doe"}),
]


def ensure_demo_users(stdout=None):
    users = {}
    for email, role, extra in DEMO_SET:
        u, created = User.objects.get_or_create(
            email=email,
            defaults={"username": email, "role": role, "is_active": True, **extra},
        )
        if not created:
            # reset role, password and activation on rerun
            u.role = role
            u.is_active = True
        u.set_password(PASSWORD)
        u.save()
        users[role] = u
        if stdout is not None:
            stdout.write(f"ok: {email} ({role})")
    return users


class Command(BaseCommand):
    help = "Ensure the demo accounts exist with password=password123 (idempotent)."

    def handle(self, *args, **opts):
        ensure_demo_users(self.stdout)
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
