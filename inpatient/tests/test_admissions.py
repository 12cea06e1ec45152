from datetime import timedelta

import pytest
from django.utils import timezone

from inpatient.exceptions import ConflictError, DomainValidationError, InvalidStateError, NotFoundError
from inpatient.models import URGENCY_EMERGENCY, AdmissionRequest, AuditEvent, Bed, Stay, StayTransition, User
from inpatient.services import admissions
from inpatient.services import facility as registry

pytestmark = pytest.mark.django_db


def test_submit_creates_pending_request(doctor, patient, facility):
    req = admissions.submit_request(
        doctor.id, patient.id, '<i>appendicitis</i>',
        urgency=URGENCY_EMERGENCY, recommended_ward_id=facility['surgery'].id,
    )
    assert req.status == AdmissionRequest.STATUS_PENDING
    assert req.diagnosis == 'appendicitis'
    assert req.treatment_plan is None
    assert AuditEvent.objects.filter(action='admission_submit', object_id=req.id).exists()


def test_submit_validation(doctor, patient, facility):
    with pytest.raises(DomainValidationError):
        admissions.submit_request(doctor.id, patient.id, '   ')
    with pytest.raises(DomainValidationError):
        admissions.submit_request(doctor.id, patient.id, 'flu', urgency='Whenever')
    with pytest.raises(DomainValidationError):
        admissions.submit_request(doctor.id, patient.id, 'flu', recommended_room_type='Suite')
    with pytest.raises(NotFoundError):
        admissions.submit_request(doctor.id, 999999, 'flu')
    with pytest.raises(NotFoundError):
        admissions.submit_request(doctor.id, patient.id, 'flu', recommended_ward_id=999999)
    assert AdmissionRequest.objects.count() == 0


def test_second_pending_request_conflicts(doctor, other_doctor, patient):
    admissions.submit_request(doctor.id, patient.id, 'flu')
    with pytest.raises(ConflictError):
        admissions.submit_request(other_doctor.id, patient.id, 'flu again')


def test_approve_scenario_a(facility, doctor, patient, admin_user, bed_invariant):
    req = admissions.submit_request(doctor.id, patient.id, 'pneumonia')
    req, stay = admissions.approve_request(
        req.id, facility['general'].id, facility['room101'].id, facility['bed_a'].id, admin_user.id,
    )
    assert req.status == AdmissionRequest.STATUS_APPROVED
    assert req.decided_by_id == admin_user.id
    assert req.decided_at is not None
    assert stay.status == Stay.STATUS_ADMITTED
    assert (stay.ward_id, stay.room_id, stay.bed_id) == (
        facility['general'].id, facility['room101'].id, facility['bed_a'].id,
    )
    assert stay.primary_diagnosis == 'pneumonia'
    assert Bed.objects.get(pk=facility['bed_a'].id).status == Bed.STATUS_OCCUPIED
    transition = StayTransition.objects.get(stay=stay)
    assert transition.from_status is None and transition.to_status == Stay.STATUS_ADMITTED


def test_approve_onto_taken_bed_scenario_b(admitted_stay, facility, doctor, patient2, admin_user, bed_invariant):
    req = admissions.submit_request(doctor.id, patient2.id, 'fracture')
    with pytest.raises(InvalidStateError):
        admissions.approve_request(req.id, facility['general'].id, facility['room101'].id, facility['bed_a'].id, admin_user.id)
    req.refresh_from_db()
    assert req.status == AdmissionRequest.STATUS_PENDING
    assert Stay.objects.active().filter(bed=facility['bed_a']).get().pk == admitted_stay.pk


def test_approve_requires_pending(admitted_stay, facility, admin_user):
    with pytest.raises(NotFoundError):
        admissions.approve_request(
            admitted_stay.admission_request_id, facility['general'].id, facility['room101'].id,
            facility['bed_b'].id, admin_user.id,
        )
    with pytest.raises(NotFoundError):
        admissions.approve_request(999999, facility['general'].id, facility['room101'].id, facility['bed_b'].id, admin_user.id)


def test_approve_rejects_broken_chain(facility, doctor, patient, admin_user, bed_invariant):
    req = admissions.submit_request(doctor.id, patient.id, 'flu')
    with pytest.raises(DomainValidationError):
        admissions.approve_request(req.id, facility['surgery'].id, facility['room101'].id, facility['bed_a'].id, admin_user.id)
    assert Bed.objects.get(pk=facility['bed_a'].id).status == Bed.STATUS_AVAILABLE


def test_approve_refuses_inactive_ward_and_unavailable_bed(facility, doctor, patient, admin_user, bed_invariant):
    req = admissions.submit_request(doctor.id, patient.id, 'flu')
    facility['general'].is_active = False
    facility['general'].save()
    with pytest.raises(InvalidStateError):
        admissions.approve_request(req.id, facility['general'].id, facility['room101'].id, facility['bed_a'].id, admin_user.id)
    Bed.objects.filter(pk=facility['bed_s'].id).update(status=Bed.STATUS_CLEANING)
    with pytest.raises(InvalidStateError):
        admissions.approve_request(req.id, facility['surgery'].id, facility['room201'].id, facility['bed_s'].id, admin_user.id)
    assert Stay.objects.count() == 0


def test_patient_with_active_stay_cannot_be_admitted_twice(admitted_stay, facility, doctor, patient, admin_user, bed_invariant):
    # a pending request can exist alongside an active stay; approval must still refuse it
    req = AdmissionRequest.objects.create(doctor=doctor, patient=patient, diagnosis='second')
    with pytest.raises(InvalidStateError):
        admissions.approve_request(req.id, facility['general'].id, facility['room101'].id, facility['bed_b'].id, admin_user.id)
    assert Bed.objects.get(pk=facility['bed_b'].id).status == Bed.STATUS_AVAILABLE


def test_reject_is_terminal(doctor, patient, admin_user, facility):
    req = admissions.submit_request(doctor.id, patient.id, 'flu')
    req = admissions.reject_request(req.id, admin_user.id, 'no beds in ward')
    assert req.status == AdmissionRequest.STATUS_REJECTED
    assert req.rejection_reason == 'no beds in ward'
    with pytest.raises(NotFoundError):
        admissions.reject_request(req.id, admin_user.id, 'again')
    with pytest.raises(NotFoundError):
        admissions.approve_request(req.id, facility['general'].id, facility['room101'].id, facility['bed_a'].id, admin_user.id)


def test_triage_order_emergency_first_then_oldest(doctor):
    now = timezone.now()
    patients = [User.objects.create_user(username=f'p{i}', role=User.ROLE_PATIENT) for i in range(4)]
    old_normal = AdmissionRequest.objects.create(doctor=doctor, patient=patients[0], diagnosis='a',
                                                 requested_at=now - timedelta(hours=3))
    new_emergency = AdmissionRequest.objects.create(doctor=doctor, patient=patients[1], diagnosis='b',
                                                    urgency=URGENCY_EMERGENCY, requested_at=now - timedelta(minutes=5))
    old_emergency = AdmissionRequest.objects.create(doctor=doctor, patient=patients[2], diagnosis='c',
                                                    urgency=URGENCY_EMERGENCY, requested_at=now - timedelta(hours=1))
    new_normal = AdmissionRequest.objects.create(doctor=doctor, patient=patients[3], diagnosis='d', requested_at=now)

    first = [r.id for r in admissions.list_requests()]
    assert first == [old_emergency.id, new_emergency.id, old_normal.id, new_normal.id]
    # listing is stable without mutation
    assert [r.id for r in admissions.list_requests()] == first


def test_list_requests_filters(doctor, other_doctor, patient, patient2, admin_user):
    a = admissions.submit_request(doctor.id, patient.id, 'flu')
    b = admissions.submit_request(other_doctor.id, patient2.id, 'flu')
    admissions.reject_request(b.id, admin_user.id, '')
    assert [r.id for r in admissions.list_requests()] == [a.id]
    assert {r.id for r in admissions.list_requests(status='all')} == {a.id, b.id}
    assert [r.id for r in admissions.list_requests(status='Rejected')] == [b.id]
    assert [r.id for r in admissions.list_requests(status='all', doctor_id=doctor.id)] == [a.id]
    with pytest.raises(DomainValidationError):
        admissions.list_requests(status='Lost')


def test_approval_loses_bed_taken_after_lock(facility, doctor, patient, admin_user, monkeypatch, bed_invariant):
    """Another writer flips the bed between the availability check and the swap."""
    req = admissions.submit_request(doctor.id, patient.id, 'sepsis')
    original = registry.lock_target_bed

    def lock_then_lose(**kwargs):
        bed = original(**kwargs)
        Bed.objects.filter(pk=bed.pk).update(status=Bed.STATUS_OCCUPIED)
        return bed

    monkeypatch.setattr(registry, 'lock_target_bed', lock_then_lose)
    bed = facility['bed_a']
    with pytest.raises(InvalidStateError):
        admissions.approve_request(req.id, facility['general'].id, facility['room101'].id, bed.id, admin_user.id)

    req.refresh_from_db()
    assert req.status == AdmissionRequest.STATUS_PENDING
    assert not Stay.objects.exists()
    assert not StayTransition.objects.exists()
    assert Bed.objects.get(pk=bed.pk).status == Bed.STATUS_AVAILABLE


def test_approval_hits_active_stay_constraint(facility, doctor, patient, admin_user, monkeypatch, bed_invariant):
    """A stay lands on the bed without its status moving; the unique constraint refuses the second."""
    req = admissions.submit_request(doctor.id, patient.id, 'sepsis')
    rival = User.objects.create_user(username='rival', role=User.ROLE_PATIENT)
    original = registry.lock_target_bed

    def lock_then_squat(**kwargs):
        bed = original(**kwargs)
        Stay.objects.create(patient=rival, doctor=doctor, ward=facility['general'], room=facility['room101'],
                            bed=bed, primary_diagnosis='x')
        return bed

    monkeypatch.setattr(registry, 'lock_target_bed', lock_then_squat)
    bed = facility['bed_a']
    with pytest.raises(InvalidStateError):
        admissions.approve_request(req.id, facility['general'].id, facility['room101'].id, bed.id, admin_user.id)

    req.refresh_from_db()
    assert req.status == AdmissionRequest.STATUS_PENDING
    assert not Stay.objects.exists()
    assert Bed.objects.get(pk=bed.pk).status == Bed.STATUS_AVAILABLE


def test_diagnosis_keeps_comparison_signs(doctor, patient):
    req = admissions.submit_request(doctor.id, patient.id, 'BP < 90 & HR > 120')
    assert req.diagnosis == 'BP < 90 & HR > 120'
