import pytest
from django.core.cache import cache

from inpatient.exceptions import NotFoundError
from inpatient.models import Bed, Room, Stay, User, Ward
from inpatient.services import occupancy
from inpatient.services import facility as registry
from inpatient.services.events import OCCUPANCY_CACHE_KEY

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


def _ward_with_beds(name, total, occupied, doctor):
    ward = Ward.objects.create(name=name, total_beds=total)
    room = Room.objects.create(ward=ward, room_number='1')
    for i in range(total):
        bed = Bed.objects.create(room=room, bed_number=str(i))
        if i < occupied:
            patient = User.objects.create_user(username=f'{name}-{i}', role=User.ROLE_PATIENT)
            Bed.objects.filter(pk=bed.pk).update(status=Bed.STATUS_OCCUPIED)
            Stay.objects.create(patient=patient, doctor=doctor, ward=ward, room=room, bed=bed, primary_diagnosis='x')
    return ward


@pytest.mark.parametrize('rate,expected', [(0, None), (74.99, None), (75, 'warning'), (89.99, 'warning'), (90, 'critical'), (100, 'critical')])
def test_alert_thresholds(rate, expected):
    assert occupancy.alert_level(rate) == expected


def test_rate_rounding():
    assert occupancy.occupancy_rate(1, 3) == 33.33
    assert occupancy.occupancy_rate(2, 3) == 66.67
    assert occupancy.occupancy_rate(0, 0) == 0.0


def test_ward_warning_scenario_d(doctor):
    ward = _ward_with_beds('East', 10, 8, doctor)
    snap = occupancy.facility_snapshot()
    item = next(w for w in snap['wards'] if w['wardId'] == ward.id)
    assert item['totalBeds'] == 10
    assert item['occupiedBeds'] == 8
    assert item['availableBeds'] == 2
    assert item['occupancyRate'] == 80.0
    assert item['alert'] == 'warning'
    assert item['capacityMismatch'] is False
    assert snap['currentPatientCount'] == 8
    assert snap['cached'] is False


def test_empty_scopes_have_zero_rate(doctor):
    Ward.objects.create(name='Empty', total_beds=4)
    snap = occupancy.facility_snapshot()
    assert snap['totalBeds'] == 0
    assert snap['occupancyRate'] == 0.0
    assert snap['wards'][0]['occupancyRate'] == 0.0
    assert snap['wards'][0]['alert'] is None
    assert snap['wards'][0]['capacityMismatch'] is True


def test_facility_totals_and_out_of_service(facility, admitted_stay):
    Bed.objects.filter(pk=facility['bed_b'].id).update(status=Bed.STATUS_CLEANING)
    Bed.objects.filter(pk=facility['bed_s'].id).update(status=Bed.STATUS_RESERVED)
    snap = occupancy.facility_snapshot()
    assert snap['totalBeds'] == 3
    assert snap['occupiedBeds'] == 1
    assert snap['availableBeds'] == 0
    assert snap['outOfServiceBeds'] == 1
    assert snap['reservedBeds'] == 1
    assert snap['occupancyRate'] == 33.33
    assert snap['wardCount'] == 2
    general = snap['wards'][0]
    assert general['wardName'] == 'General'
    assert general['occupancyRate'] == 50.0
    assert general['alert'] is None


def test_ward_snapshot_per_room(facility, admitted_stay):
    snap = occupancy.ward_snapshot(facility['general'].id)
    assert snap['occupiedBeds'] == 1
    assert snap['currentPatientCount'] == 1
    assert snap['rooms'] == [{
        'roomId': facility['room101'].id,
        'roomNumber': '101',
        'roomType': Room.TYPE_GENERAL,
        'isActive': True,
        'totalBeds': 2,
        'occupiedBeds': 1,
        'availableBeds': 1,
        'reservedBeds': 0,
        'outOfServiceBeds': 0,
        'occupancyRate': 50.0,
    }]
    with pytest.raises(NotFoundError):
        occupancy.ward_snapshot(999999)


def test_cached_snapshot_dropped_after_commit(facility, django_capture_on_commit_callbacks):
    first = occupancy.cached_facility_snapshot()
    assert first['cached'] is False
    assert occupancy.cached_facility_snapshot()['cached'] is True

    with django_capture_on_commit_callbacks(execute=True):
        registry.update_bed(facility['bed_b'].id, status=Bed.STATUS_MAINTENANCE)
    assert cache.get(OCCUPANCY_CACHE_KEY) is None
    fresh = occupancy.cached_facility_snapshot()
    assert fresh['cached'] is False
    assert fresh['outOfServiceBeds'] == 1


def test_discharged_history_does_not_inflate_counts(facility, admitted_stay, doctor):
    for i in range(2):
        former = User.objects.create_user(username=f'former-{i}', role=User.ROLE_PATIENT)
        Stay.objects.create(patient=former, doctor=doctor, ward=facility['general'], room=facility['room101'],
                            bed=facility['bed_b'], primary_diagnosis='x', status=Stay.STATUS_DISCHARGED)
    snap = occupancy.facility_snapshot()
    assert snap['totalBeds'] == 3
    assert snap['occupiedBeds'] == 1
    assert snap['availableBeds'] == 2
    assert snap['currentPatientCount'] == 1
    general = snap['wards'][0]
    assert general['totalBeds'] == 2
    assert general['currentPatientCount'] == 1
    assert snap['wards'][1]['currentPatientCount'] == 0

    ward = occupancy.ward_snapshot(facility['general'].id)
    assert ward['totalBeds'] == 2
    assert ward['availableBeds'] == 1
    assert ward['currentPatientCount'] == 1
