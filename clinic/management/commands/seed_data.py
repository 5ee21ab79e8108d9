"""
Management command that installs roles, the default feature matrix,
polyclinics, demo staff and a starter pharmacy catalogue.

Safe to run repeatedly: existing rows are left untouched.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import AccessControl, Doctor, Item, Polyclinic, Role, Staff, User
from clinic.services import stock
from clinic.services.access_control import DEFAULT_FEATURES
from clinic.services.accounts import SCHEDULE_PRESETS

DEFAULT_PASSWORD = 'Mediku#2024'

ROLE_DESCRIPTIONS = {
    Role.ADMIN: 'Administrator sistem',
    Role.DOCTOR: 'Dokter',
    Role.NURSE: 'Perawat',
    Role.PHARMACIST: 'Apoteker',
    Role.REGISTRATION_STAFF: 'Petugas pendaftaran',
    Role.INVENTORY_STAFF: 'Petugas gudang',
    Role.STAFF: 'Staf umum',
    Role.PATIENT: 'Pasien',
}

POLYCLINICS = [
    ('UMUM', 'Poli Umum', 'Pemeriksaan umum'),
    ('GIGI', 'Poli Gigi', 'Kesehatan gigi dan mulut'),
    ('ANAK', 'Poli Anak', 'Kesehatan anak'),
]

DOCTORS = [
    ('dr.budi@mediku.local', 'dr. Budi Santoso', 'Dokter Umum', 'UMUM', 'pagi'),
    ('dr.sari@mediku.local', 'drg. Sari Wulandari', 'Dokter Gigi', 'GIGI', 'siang'),
    ('dr.andi@mediku.local', 'dr. Andi Pratama, Sp.A', 'Spesialis Anak', 'ANAK', 'weekend'),
]

STAFF = [
    ('apoteker@mediku.local', 'Rina Apoteker', Role.PHARMACIST, 'Farmasi', 'Apoteker'),
    ('gudang@mediku.local', 'Joko Gudang', Role.INVENTORY_STAFF, 'Logistik', 'Petugas Gudang'),
    ('pendaftaran@mediku.local', 'Dewi Pendaftaran', Role.REGISTRATION_STAFF, 'Pendaftaran', 'Petugas'),
    ('perawat@mediku.local', 'Lina Perawat', Role.NURSE, 'Keperawatan', 'Perawat'),
]

ITEMS = [
    {'code': 'OBT-001', 'name': 'Paracetamol 500mg', 'category': 'obat', 'unit': 'tablet',
     'min_stock': 100, 'current_stock': 500, 'price': 500},
    {'code': 'OBT-002', 'name': 'Amoxicillin 500mg', 'category': 'obat', 'unit': 'kapsul',
     'min_stock': 50, 'current_stock': 200, 'price': 1500},
    {'code': 'OBT-003', 'name': 'Ibuprofen 400mg', 'category': 'obat', 'unit': 'tablet',
     'min_stock': 50, 'current_stock': 150, 'price': 800},
    {'code': 'OBT-004', 'name': 'Sirup OBH', 'category': 'obat', 'unit': 'botol',
     'min_stock': 10, 'current_stock': 30, 'price': 12000},
    {'code': 'ALK-001', 'name': 'Sarung Tangan Medis', 'category': 'alkes', 'unit': 'box',
     'min_stock': 5, 'current_stock': 20, 'price': 45000},
    {'code': 'ALK-002', 'name': 'Masker Medis', 'category': 'alkes', 'unit': 'box',
     'min_stock': 5, 'current_stock': 3, 'price': 30000},
]


class Command(BaseCommand):
    help = 'Seed roles, feature access, polyclinics, demo accounts and stock items (idempotent).'

    def add_arguments(self, parser):
        parser.add_argument('--password', default=DEFAULT_PASSWORD,
                            help='Password for newly created demo accounts.')
        parser.add_argument('--skip-items', action='store_true', help='Do not create stock items.')

    @transaction.atomic
    def handle(self, *args, **options):
        password = options['password']
        roles = self.create_roles()
        self.create_access_controls(roles)
        polyclinics = self.create_polyclinics()
        self.create_admin(roles, password)
        self.create_doctors(roles, polyclinics, password)
        self.create_staff(roles, password)
        if not options['skip_items']:
            self.create_items()
        self.stdout.write(self.style.SUCCESS('Seed data ready.'))

    def create_roles(self):
        roles = {}
        for name, description in ROLE_DESCRIPTIONS.items():
            roles[name], created = Role.objects.get_or_create(name=name, defaults={'description': description})
            if created:
                self.stdout.write(f'role {name} created')
        return roles

    def create_access_controls(self, roles):
        count = 0
        for role_name, features in DEFAULT_FEATURES.items():
            for feature in features:
                _, created = AccessControl.objects.get_or_create(role=roles[role_name], feature=feature)
                count += int(created)
        self.stdout.write(f'{count} feature grants added')

    def create_polyclinics(self):
        polyclinics = {}
        for code, name, description in POLYCLINICS:
            polyclinics[code], _ = Polyclinic.objects.get_or_create(
                code=code, defaults={'name': name, 'description': description}
            )
        return polyclinics

    def _user(self, email, name, role, password, **extra):
        user, created = User.objects.get_or_create(
            email=email,
            defaults={'username': email, 'name': name, 'role': role, **extra},
        )
        if created:
            user.set_password(password)
            user.save(update_fields=['password'])
            self.stdout.write(f'user {email} created')
        return user

    def create_admin(self, roles, password):
        self._user('admin@mediku.local', 'Administrator', roles[Role.ADMIN], password,
                   is_staff=True, is_superuser=True)

    def create_doctors(self, roles, polyclinics, password):
        for email, name, specialization, poly_code, schedule in DOCTORS:
            user = self._user(email, name, roles[Role.DOCTOR], password)
            Doctor.objects.get_or_create(
                user=user,
                defaults={
                    'specialization': specialization,
                    'polyclinic': polyclinics[poly_code],
                    'schedule': SCHEDULE_PRESETS[schedule],
                },
            )

    def create_staff(self, roles, password):
        for email, name, role_name, department, position in STAFF:
            user = self._user(email, name, roles[role_name], password)
            Staff.objects.get_or_create(user=user, defaults={'department': department, 'position': position})

    def create_items(self):
        for fields in ITEMS:
            if Item.objects.filter(code=fields['code']).exists():
                continue
            stock.create_item(**fields)
            self.stdout.write(f"item {fields['code']} created")
