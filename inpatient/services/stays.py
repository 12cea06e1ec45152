"""
Inpatient stay lifecycle.

Each operation that moves a bed runs in one transaction that locks the
stay row first, then the bed rows in ascending id order, and moves bed
status with a compare-and-swap.  Every status change is recorded as a
:class:`StayTransition` and an audit event.
"""
import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from inpatient.exceptions import DomainValidationError, InvalidStateError, NotFoundError
from inpatient.models import AdmissionRequest, Bed, DailyNote, Stay, StayTransition, User, Ward
from inpatient.services import facility
from inpatient.services.audit import log_action
from inpatient.services.events import occupancy_changed
from inpatient.services.text import clean_optional, clean_text

logger = logging.getLogger(__name__)

STATUS_VALUES = {value for value, _ in Stay.STATUS_CHOICES}


# ---------------------------------------------------------------------------
# Lookups and access
# ---------------------------------------------------------------------------

def _stays() -> QuerySet:
    return Stay.objects.select_related('patient', 'doctor', 'ward', 'room', 'bed', 'suggested_ward')


def get_stay(stay_id) -> Stay:
    stay = _stays().filter(pk=stay_id).first()
    if not stay:
        raise NotFoundError('stay not found')
    return stay


def lock_stay(stay_id) -> Stay:
    """Lock the stay row; call inside ``transaction.atomic``."""
    stay = Stay.objects.select_for_update().filter(pk=stay_id).first()
    if not stay:
        raise NotFoundError('stay not found')
    return stay


def ensure_admitting_doctor(stay: Stay, doctor_id) -> None:
    if doctor_id is None or stay.doctor_id != int(doctor_id):
        raise PermissionDenied('only the admitting doctor may do this')


def ensure_stay_access(stay: Stay, user) -> None:
    """Admins see every stay; doctors see the stays they admitted."""
    role = getattr(user, 'role', None)
    if role == User.ROLE_ADMIN:
        return
    if role == User.ROLE_DOCTOR and stay.doctor_id == user.id:
        return
    raise PermissionDenied('not allowed to view this stay')


def list_stays(*, status: Optional[str]=None, doctor_id=None, patient_id=None, ward_id=None) -> QuerySet:
    qs = _stays()
    if status == 'active':
        qs = qs.active()
    elif status:
        if status not in STATUS_VALUES:
            raise DomainValidationError(f'unknown stay status: {status}')
        qs = qs.filter(status=status)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if ward_id:
        qs = qs.filter(ward_id=ward_id)
    return qs.order_by('-admitted_at', '-id')


def stay_history(stay_id) -> list:
    stay = get_stay(stay_id)
    return [format_transition(t) for t in stay.transitions.select_related('actor')]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _transition(stay: Stay, new_status: str, *, actor_id, reason: str='', fields=()) -> None:
    if not stay.can_transition(new_status):
        raise InvalidStateError(f'cannot move stay from {stay.status} to {new_status}')
    old = stay.status
    stay.status = new_status
    stay.save(update_fields=['status', 'updated_at', *fields])
    StayTransition.objects.create(stay=stay, from_status=old, to_status=new_status, actor_id=actor_id, reason=reason or '')
    log_action(user_id=actor_id, action='stay_status', object_type='stay', object_id=stay.id,
               detail={'from': old, 'to': new_status})
    logger.info('stay %s %s -> %s by %s', stay.id, old, new_status, actor_id)


def _system_note(stay: Stay, doctor_id, text: str) -> DailyNote:
    return DailyNote.objects.create(stay=stay, doctor_id=doctor_id, text=text)


def _place(stay: Stay, bed: Bed) -> None:
    stay.bed = bed
    stay.room_id = bed.room_id
    stay.ward_id = bed.room.ward_id
    stay.location_label = facility.location_label(bed)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def admit_from_approval(request: AdmissionRequest, bed: Bed, admin_id) -> Stay:
    """Create the stay for an approved request.

    Only called from inside the approval transaction, with ``request``
    and ``bed`` already locked.
    """
    facility.occupy_bed(bed)
    stay = Stay(
        patient_id=request.patient_id,
        doctor_id=request.doctor_id,
        admission_request=request,
        primary_diagnosis=request.diagnosis,
        treatment_plan=request.treatment_plan,
        urgency=request.urgency,
        status=Stay.STATUS_ADMITTED,
        admitted_at=timezone.now(),
    )
    _place(stay, bed)
    try:
        with transaction.atomic():
            stay.save()
    except IntegrityError:
        logger.warning('admission of patient %s onto bed %s hit an active-stay constraint', request.patient_id, bed.id)
        raise InvalidStateError('patient or bed already has an active stay')
    StayTransition.objects.create(stay=stay, from_status=None, to_status=Stay.STATUS_ADMITTED, actor_id=admin_id,
                                  reason=f'admission request #{request.id} approved')
    log_action(user_id=admin_id, action='stay_admit', object_type='stay', object_id=stay.id,
               detail={'requestId': request.id, 'bedId': bed.id})
    logger.info('stay %s admitted patient %s to bed %s', stay.id, stay.patient_id, bed.id)
    return stay


@transaction.atomic
def start_care(stay_id, doctor_id) -> Stay:
    stay = lock_stay(stay_id)
    ensure_admitting_doctor(stay, doctor_id)
    if stay.status != Stay.STATUS_ADMITTED:
        raise InvalidStateError(f'care can only start on an Admitted stay (status: {stay.status})')
    _transition(stay, Stay.STATUS_UNDER_CARE, actor_id=doctor_id)
    return stay


@transaction.atomic
def request_transfer(stay_id, doctor_id, reason: str, suggested_ward_id=None) -> Stay:
    stay = lock_stay(stay_id)
    ensure_admitting_doctor(stay, doctor_id)
    suggested = None
    if suggested_ward_id:
        suggested = Ward.objects.filter(pk=suggested_ward_id).first()
        if not suggested:
            raise NotFoundError('suggested ward not found')
    if stay.status not in (Stay.STATUS_ADMITTED, Stay.STATUS_UNDER_CARE):
        raise InvalidStateError(f'transfer can only be requested from Admitted or UnderCare (status: {stay.status})')
    reason = clean_text(reason)
    stay.transfer_reason = reason
    stay.suggested_ward = suggested
    _transition(stay, Stay.STATUS_TRANSFER_REQUESTED, actor_id=doctor_id, reason=reason,
                fields=('transfer_reason', 'suggested_ward'))
    text = 'Transfer requested'
    if suggested:
        text += f' to {suggested.name}'
    if reason:
        text += f': {reason}'
    _system_note(stay, doctor_id, text)
    return stay


@transaction.atomic
def complete_transfer(stay_id, new_ward_id, new_room_id, new_bed_id, admin_id) -> Stay:
    stay = lock_stay(stay_id)
    if stay.status != Stay.STATUS_TRANSFER_REQUESTED:
        raise InvalidStateError(f'no transfer is pending (status: {stay.status})')
    try:
        new_bed_id = int(new_bed_id)
    except (TypeError, ValueError):
        raise DomainValidationError('bedId must be an integer')
    locked = facility.lock_beds_in_order([stay.bed_id, new_bed_id])
    new_bed = facility.lock_target_bed(ward_id=new_ward_id, room_id=new_room_id, bed_id=new_bed_id)
    old_bed = locked.get(stay.bed_id)
    old_ward_id = stay.ward_id
    facility.release_bed(old_bed)
    facility.occupy_bed(new_bed)
    _place(stay, new_bed)
    try:
        with transaction.atomic():
            _transition(stay, Stay.STATUS_UNDER_CARE, actor_id=admin_id, reason='transfer completed',
                        fields=('bed', 'room', 'ward', 'location_label'))
    except IntegrityError:
        raise InvalidStateError('bed already has an active stay')
    log_action(user_id=admin_id, action='stay_transfer', object_type='stay', object_id=stay.id,
               detail={'fromBedId': old_bed.id if old_bed else None, 'toBedId': new_bed.id})
    occupancy_changed('transfer', ward_ids=[old_ward_id, stay.ward_id], bed_ids=[stay.bed_id, old_bed.id if old_bed else None])
    return stay


@transaction.atomic
def request_discharge(stay_id, doctor_id, discharge_summary: str) -> Stay:
    stay = lock_stay(stay_id)
    ensure_admitting_doctor(stay, doctor_id)
    summary = clean_optional(discharge_summary)
    stay.discharge_summary = summary
    _transition(stay, Stay.STATUS_DISCHARGE_REQUESTED, actor_id=doctor_id, fields=('discharge_summary',))
    _system_note(stay, doctor_id, f'Discharge requested: {summary}' if summary else 'Discharge requested')
    return stay


@transaction.atomic
def approve_discharge(stay_id, admin_id) -> Stay:
    stay = lock_stay(stay_id)
    if stay.status != Stay.STATUS_DISCHARGE_REQUESTED:
        raise InvalidStateError(f'discharge has not been requested (status: {stay.status})')
    bed = facility.lock_beds_in_order([stay.bed_id]).get(stay.bed_id)
    facility.release_bed(bed)
    stay.discharged_at = timezone.now()
    stay.discharged_by_id = admin_id
    _transition(stay, Stay.STATUS_DISCHARGED, actor_id=admin_id, fields=('discharged_at', 'discharged_by'))
    occupancy_changed('discharge', ward_ids=[stay.ward_id], bed_ids=[stay.bed_id])
    return stay


@transaction.atomic
def update_treatment_plan(stay_id, doctor_id, plan: str) -> Stay:
    stay = lock_stay(stay_id)
    ensure_admitting_doctor(stay, doctor_id)
    if not stay.is_active:
        raise InvalidStateError('stay is discharged')
    plan = clean_text(plan)
    if not plan:
        raise DomainValidationError('treatment plan is required')
    stay.treatment_plan = plan
    stay.save(update_fields=['treatment_plan', 'updated_at'])
    _system_note(stay, doctor_id, 'Treatment plan updated')
    log_action(user_id=doctor_id, action='stay_treatment_plan', object_type='stay', object_id=stay.id)
    return stay


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def _name(user) -> Optional[str]:
    return user.display_name if user else None


def format_transition(t: StayTransition) -> dict:
    return {
        'from': t.from_status,
        'to': t.to_status,
        'actorId': t.actor_id,
        'reason': t.reason,
        'at': t.timestamp.isoformat(),
    }


def format_stay(stay: Stay) -> dict:
    return {
        'id': stay.id,
        'patientId': stay.patient_id,
        'patientName': _name(stay.patient),
        'doctorId': stay.doctor_id,
        'doctorName': _name(stay.doctor),
        'admissionRequestId': stay.admission_request_id,
        'wardId': stay.ward_id,
        'wardName': stay.ward.name if stay.ward_id else None,
        'roomId': stay.room_id,
        'roomNumber': stay.room.room_number if stay.room_id else None,
        'bedId': stay.bed_id,
        'bedNumber': stay.bed.bed_number if stay.bed_id else None,
        'location': stay.location_label,
        'primaryDiagnosis': stay.primary_diagnosis,
        'treatmentPlan': stay.treatment_plan,
        'urgency': stay.urgency,
        'status': stay.status,
        'transferReason': stay.transfer_reason,
        'suggestedWardId': stay.suggested_ward_id,
        'dischargeSummary': stay.discharge_summary,
        'admittedAt': stay.admitted_at.isoformat() if stay.admitted_at else None,
        'dischargedAt': stay.discharged_at.isoformat() if stay.discharged_at else None,
        'dischargedBy': stay.discharged_by_id,
    }
