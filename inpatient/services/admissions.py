"""
Admission request workflow: submit, triage, approve with a bed, reject.

Approval is the only path that creates a stay.  It locks the request,
then the bed, moves the bed Available -> Occupied and creates the stay,
all in one transaction.
"""
import logging
from typing import Optional

from django.db import transaction
from django.db.models import Case, IntegerField, QuerySet, Value, When
from django.utils import timezone

from inpatient.exceptions import ConflictError, DomainValidationError, InvalidStateError, NotFoundError
from inpatient.models import URGENCY_CHOICES, URGENCY_EMERGENCY, URGENCY_NORMAL, AdmissionRequest, Room, Stay, User, Ward
from inpatient.services import facility, stays
from inpatient.services.audit import log_action
from inpatient.services.events import occupancy_changed
from inpatient.services.text import clean_optional, clean_text

logger = logging.getLogger(__name__)

URGENCY_VALUES = {value for value, _ in URGENCY_CHOICES}
STATUS_VALUES = {value for value, _ in AdmissionRequest.STATUS_CHOICES}
ROOM_TYPES = {value for value, _ in Room.TYPE_CHOICES}


def submit_request(doctor_id, patient_id, diagnosis: str, treatment_plan: Optional[str]=None,
                   urgency: str=URGENCY_NORMAL, recommended_ward_id=None,
                   recommended_room_type: Optional[str]=None) -> AdmissionRequest:
    diagnosis = clean_text(diagnosis)
    if not diagnosis:
        raise DomainValidationError('diagnosis is required')
    urgency = urgency or URGENCY_NORMAL
    if urgency not in URGENCY_VALUES:
        raise DomainValidationError(f'unknown urgency: {urgency}')
    if recommended_room_type and recommended_room_type not in ROOM_TYPES:
        raise DomainValidationError(f'unknown room type: {recommended_room_type}')
    if not User.objects.filter(pk=patient_id, role=User.ROLE_PATIENT).exists():
        raise NotFoundError('patient not found')
    if recommended_ward_id and not Ward.objects.filter(pk=recommended_ward_id).exists():
        raise NotFoundError('recommended ward not found')

    with transaction.atomic():
        # serialize submissions for the same patient on the patient row
        User.objects.select_for_update().filter(pk=patient_id).first()
        if AdmissionRequest.objects.filter(patient_id=patient_id, status=AdmissionRequest.STATUS_PENDING).exists():
            raise ConflictError('patient already has a pending admission request')
        req = AdmissionRequest.objects.create(
            doctor_id=doctor_id,
            patient_id=patient_id,
            diagnosis=diagnosis,
            treatment_plan=clean_optional(treatment_plan),
            urgency=urgency,
            recommended_ward_id=recommended_ward_id or None,
            recommended_room_type=recommended_room_type or None,
        )
        log_action(user_id=doctor_id, action='admission_submit', object_type='admission_request', object_id=req.id,
                   detail={'patientId': int(patient_id), 'urgency': urgency})
    logger.info('admission request %s submitted by doctor %s (%s)', req.id, doctor_id, urgency)
    return req


def _lock_pending(request_id) -> AdmissionRequest:
    req = AdmissionRequest.objects.select_for_update().filter(pk=request_id, status=AdmissionRequest.STATUS_PENDING).first()
    if not req:
        raise NotFoundError('no pending admission request with this id')
    return req


@transaction.atomic
def approve_request(request_id, ward_id, room_id, bed_id, admin_id):
    """Approve a pending request onto a specific bed.

    Returns ``(request, stay)``.  Raises InvalidStateError when the bed
    was taken first by a concurrent approval or transfer.
    """
    req = _lock_pending(request_id)
    bed = facility.lock_target_bed(ward_id=ward_id, room_id=room_id, bed_id=bed_id)
    if Stay.objects.active().filter(patient_id=req.patient_id).exists():
        raise InvalidStateError('patient already has an active stay')
    stay = stays.admit_from_approval(req, bed, admin_id)
    req.status = AdmissionRequest.STATUS_APPROVED
    req.decided_at = timezone.now()
    req.decided_by_id = admin_id
    req.save(update_fields=['status', 'decided_at', 'decided_by'])
    log_action(user_id=admin_id, action='admission_approve', object_type='admission_request', object_id=req.id,
               detail={'stayId': stay.id, 'bedId': bed.id})
    occupancy_changed('admission', ward_ids=[stay.ward_id], bed_ids=[bed.id])
    logger.info('admission request %s approved onto bed %s by admin %s', req.id, bed.id, admin_id)
    return req, stay


@transaction.atomic
def reject_request(request_id, admin_id, reason: str) -> AdmissionRequest:
    req = _lock_pending(request_id)
    req.status = AdmissionRequest.STATUS_REJECTED
    req.rejection_reason = reason if reason is not None else ''
    req.decided_at = timezone.now()
    req.decided_by_id = admin_id
    req.save(update_fields=['status', 'rejection_reason', 'decided_at', 'decided_by'])
    log_action(user_id=admin_id, action='admission_reject', object_type='admission_request', object_id=req.id)
    logger.info('admission request %s rejected by admin %s', req.id, admin_id)
    return req


def list_requests(*, status: Optional[str]=AdmissionRequest.STATUS_PENDING, doctor_id=None, patient_id=None) -> QuerySet:
    """Triage order: Emergency first, then oldest first."""
    qs = AdmissionRequest.objects.select_related('doctor', 'patient', 'recommended_ward', 'stay')
    if status and status != 'all':
        if status not in STATUS_VALUES:
            raise DomainValidationError(f'unknown request status: {status}')
        qs = qs.filter(status=status)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    return qs.annotate(
        urgency_rank=Case(
            When(urgency=URGENCY_EMERGENCY, then=Value(0)),
            default=Value(1),
            output_field=IntegerField(),
        )
    ).order_by('urgency_rank', 'requested_at', 'id')


def get_request(request_id) -> AdmissionRequest:
    req = AdmissionRequest.objects.select_related('doctor', 'patient', 'recommended_ward').filter(pk=request_id).first()
    if not req:
        raise NotFoundError('admission request not found')
    return req


def format_request(req: AdmissionRequest) -> dict:
    stay = getattr(req, 'stay', None) if req.status == AdmissionRequest.STATUS_APPROVED else None
    return {
        'id': req.id,
        'doctorId': req.doctor_id,
        'doctorName': req.doctor.display_name,
        'patientId': req.patient_id,
        'patientName': req.patient.display_name,
        'diagnosis': req.diagnosis,
        'treatmentPlan': req.treatment_plan,
        'urgency': req.urgency,
        'recommendedWardId': req.recommended_ward_id,
        'recommendedWardName': req.recommended_ward.name if req.recommended_ward_id else None,
        'recommendedRoomType': req.recommended_room_type,
        'status': req.status,
        'rejectionReason': req.rejection_reason,
        'requestedAt': req.requested_at.isoformat(),
        'decidedAt': req.decided_at.isoformat() if req.decided_at else None,
        'decidedBy': req.decided_by_id,
        'stayId': stay.id if stay else None,
    }
