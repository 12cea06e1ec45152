import pytest

from inpatient.models import AdmissionRequest, AuditEvent, Bed, Room, Stay, User, Ward

from .conftest import check_bed_invariant

pytestmark = pytest.mark.django_db


@pytest.fixture
def staff_client(client):
    user = User.objects.create_superuser(username='root', email='root@example.com', password='P@ssw0rd1',
                                         role=User.ROLE_ADMIN)
    client.force_login(user)
    return client


def test_room_with_admitted_patient_cannot_be_deleted(staff_client, admitted_stay, facility):
    room = facility['room101']
    resp = staff_client.post(f'/admin/inpatient/room/{room.id}/delete/', {'post': 'yes'})
    assert resp.status_code == 403
    assert Room.objects.filter(pk=room.id).exists()
    admitted_stay.refresh_from_db()
    assert admitted_stay.bed_id == facility['bed_a'].id
    check_bed_invariant()


def test_ward_and_bed_with_admitted_patient_cannot_be_deleted(staff_client, admitted_stay, facility):
    resp = staff_client.post(f"/admin/inpatient/ward/{facility['general'].id}/delete/", {'post': 'yes'})
    assert resp.status_code == 403
    resp = staff_client.post(f"/admin/inpatient/bed/{facility['bed_a'].id}/delete/", {'post': 'yes'})
    assert resp.status_code == 403
    resp = staff_client.post('/admin/inpatient/room/', {
        'action': 'delete_selected',
        '_selected_action': [facility['room101'].id],
        'post': 'yes',
    })
    assert resp.status_code in (302, 403)
    assert Ward.objects.filter(pk=facility['general'].id).exists()
    assert Bed.objects.filter(pk=facility['bed_a'].id).exists()
    assert Room.objects.filter(pk=facility['room101'].id).exists()
    check_bed_invariant()


def test_idle_room_delete_goes_through_registry(staff_client, admitted_stay, facility):
    room = facility['room201']
    resp = staff_client.post(f'/admin/inpatient/room/{room.id}/delete/', {'post': 'yes'})
    assert resp.status_code == 302
    assert not Room.objects.filter(pk=room.id).exists()
    assert not Bed.objects.filter(pk=facility['bed_s'].id).exists()
    assert AuditEvent.objects.filter(action='room_delete', object_id=room.id, user__username='root').exists()


def test_stays_and_requests_are_not_deletable(staff_client, admitted_stay):
    resp = staff_client.post(f'/admin/inpatient/stay/{admitted_stay.id}/delete/', {'post': 'yes'})
    assert resp.status_code == 403
    assert Stay.objects.filter(pk=admitted_stay.id).exists()
    req_id = admitted_stay.admission_request_id
    resp = staff_client.post(f'/admin/inpatient/admissionrequest/{req_id}/delete/', {'post': 'yes'})
    assert resp.status_code == 403
    assert AdmissionRequest.objects.filter(pk=req_id).exists()
    check_bed_invariant()
