import pytest

from inpatient.models import Bed, Room, Stay, User, Ward
from inpatient.services import admissions


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role=User.ROLE_ADMIN)


@pytest.fixture
def doctor(db):
    return User.objects.create_user(username='doctor1', password='P@ssw0rd1', role=User.ROLE_DOCTOR,
                                    first_name='Ada', last_name='Lovelace')


@pytest.fixture
def other_doctor(db):
    return User.objects.create_user(username='doctor2', password='P@ssw0rd1', role=User.ROLE_DOCTOR)


@pytest.fixture
def patient(db):
    return User.objects.create_user(username='patient1', password='P@ssw0rd1', role=User.ROLE_PATIENT)


@pytest.fixture
def patient2(db):
    return User.objects.create_user(username='patient2', password='P@ssw0rd1', role=User.ROLE_PATIENT)


@pytest.fixture
def facility(db):
    """Two wards: General (room 101, beds A and B) and Surgery (room 201, bed A)."""
    general = Ward.objects.create(name='General', total_beds=2)
    room101 = Room.objects.create(ward=general, room_number='101', room_type=Room.TYPE_GENERAL)
    bed_a = Bed.objects.create(room=room101, bed_number='A')
    bed_b = Bed.objects.create(room=room101, bed_number='B')
    surgery = Ward.objects.create(name='Surgery')
    room201 = Room.objects.create(ward=surgery, room_number='201', room_type=Room.TYPE_SINGLE)
    bed_s = Bed.objects.create(room=room201, bed_number='A')
    return {
        'general': general, 'room101': room101, 'bed_a': bed_a, 'bed_b': bed_b,
        'surgery': surgery, 'room201': room201, 'bed_s': bed_s,
    }


@pytest.fixture
def admitted_stay(facility, doctor, patient, admin_user):
    """Scenario A: patient admitted onto General / 101 / A."""
    req = admissions.submit_request(doctor.id, patient.id, 'pneumonia', treatment_plan='antibiotics')
    bed = facility['bed_a']
    _, stay = admissions.approve_request(req.id, facility['general'].id, facility['room101'].id, bed.id, admin_user.id)
    return stay


def check_bed_invariant():
    """A bed is Occupied iff exactly one non-discharged stay references it."""
    for bed in Bed.objects.all():
        active = Stay.objects.active().filter(bed=bed).count()
        assert active <= 1, f'bed {bed.pk} has {active} active stays'
        assert (bed.status == Bed.STATUS_OCCUPIED) == (active == 1), f'bed {bed.pk} status {bed.status} with {active} active stays'


@pytest.fixture
def bed_invariant(db):
    yield check_bed_invariant
    check_bed_invariant()
