from django.core.management.base import BaseCommand

from clinic.models import Patient, Role, User
from clinic.services.patients import next_medical_record_number

TEST_PASSWORD = 'Mediku#2024'

TEST_SET = [
    ('admin1', Role.ADMIN),
    ('doctor1', Role.DOCTOR),
    ('pharmacist1', Role.PHARMACIST),
    ('inventory1', Role.INVENTORY_STAFF),
    ('registration1', Role.REGISTRATION_STAFF),
    ('patient1', Role.PATIENT),
]


class Command(BaseCommand):
    help = f'Ensure one test account per role exists with password={TEST_PASSWORD} (idempotent).'

    def handle(self, *args, **opts):
        for username, role_name in TEST_SET:
            role, _ = Role.objects.get_or_create(name=role_name)
            email = f'{username}@test.mediku.local'
            user, created = User.objects.get_or_create(
                username=username,
                defaults={'email': email, 'name': username, 'role': role, 'is_active': True},
            )
            # reset credentials, activation and role
            user.set_password(TEST_PASSWORD)
            user.role = role
            user.is_active = True
            user.save(update_fields=['password', 'role', 'is_active'])
            if role_name == Role.PATIENT and not hasattr(user, 'patient_profile'):
                Patient.objects.create(
                    user=user, name=username, medical_record_number=next_medical_record_number()
                )
            self.stdout.write(self.style.SUCCESS(f'ok: {username} ({role_name})'))
        self.stdout.write(self.style.SUCCESS('All test users ensured.'))
