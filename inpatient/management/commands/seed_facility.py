"""
Management command to seed a demo facility and test users.

Idempotent: wards, rooms, beds and users are matched by their natural
keys and only created when missing.  Existing bed status is never
touched.
"""
from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction

from inpatient.models import Bed, Room, User, Ward
from inpatient.services.events import occupancy_changed

WARDS = [
    # (name, description, [(room number, room type, bed count)])
    ("General Medicine", "Adult general medical ward", [("101", Room.TYPE_GENERAL, 4), ("102", Room.TYPE_DOUBLE, 2)]),
    ("ICU", "Intensive care unit", [("201", Room.TYPE_ICU, 2), ("202", Room.TYPE_ICU, 2)]),
    ("Maternity", "Obstetrics and postnatal care", [("301", Room.TYPE_MATERNITY, 2), ("302", Room.TYPE_SINGLE, 1)]),
    ("Pediatrics", "Children's ward", [("401", Room.TYPE_PEDIATRIC, 3)]),
]

TEST_USERS = [
    ("admin1", User.ROLE_ADMIN),
    ("doctor1", User.ROLE_DOCTOR),
    ("doctor2", User.ROLE_DOCTOR),
    ("patient1", User.ROLE_PATIENT),
    ("patient2", User.ROLE_PATIENT),
    ("patient3", User.ROLE_PATIENT),
]


class Command(BaseCommand):
    help = 'Seed wards, rooms and beds plus test users (password=123456).'

    def add_arguments(self, parser):
        parser.add_argument('--no-users', action='store_true', help='skip test users')

    @transaction.atomic
    def handle(self, *args, **options):
        created_beds = 0
        for name, description, rooms in WARDS:
            ward, _ = Ward.objects.get_or_create(name=name, defaults={'description': description})
            declared = 0
            for number, room_type, bed_count in rooms:
                room, _ = Room.objects.get_or_create(ward=ward, room_number=number, defaults={'room_type': room_type})
                for i in range(bed_count):
                    _, created = Bed.objects.get_or_create(room=room, bed_number=chr(ord('A') + i))
                    created_beds += int(created)
                declared += bed_count
            if ward.total_beds is None:
                ward.total_beds = declared
                ward.save(update_fields=['total_beds', 'updated_at'])
            self.stdout.write(f'ward: {ward.name}')

        if not options['no_users']:
            for username, role in TEST_USERS:
                _, created = User.objects.get_or_create(
                    username=username,
                    defaults={'role': role, 'password': make_password('123456'), 'is_active': True},
                )
                self.stdout.write(f"{'created' if created else 'exists'}: {username} ({role})")

        if created_beds:
            occupancy_changed('seed')
        self.stdout.write(self.style.SUCCESS(f'Facility seeded ({created_beds} new beds).'))
