"""
Inpatient stay endpoints: listing, detail and lifecycle actions.

Doctor actions (start care, transfer or discharge request, treatment
plan, notes) are limited to the admitting doctor by the services.
Administrator actions (complete transfer, approve discharge) require
the admin role.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from inpatient.models import User
from inpatient.permissions import IsAdminRole, IsDoctorRole, IsStaffRole
from inpatient.serializers.admissions import BedAssignmentSerializer
from inpatient.serializers.stays import (
    DischargeRequestSerializer,
    NoteCreateSerializer,
    NoteListQuerySerializer,
    StayListQuerySerializer,
    TransferRequestSerializer,
    TreatmentPlanSerializer,
)
from inpatient.services import notes, stays


def _stay_response(stay_id, **extra):
    return Response({'ok': True, 'data': stays.format_stay(stays.get_stay(stay_id)), **extra})


@api_view(['GET'])
@permission_classes([IsStaffRole])
def stay_list(request):
    user: User = request.user
    q = StayListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    d = q.validated_data
    doctor_id = d.get('doctorId')
    if user.role == User.ROLE_DOCTOR or d.get('mine'):
        # doctors only list their own patients
        doctor_id = user.id
    items = stays.list_stays(
        status=d.get('status'),
        doctor_id=doctor_id,
        patient_id=d.get('patientId'),
        ward_id=d.get('wardId'),
    )
    return Response({'ok': True, 'data': [stays.format_stay(s) for s in items]})


@api_view(['GET'])
@permission_classes([IsStaffRole])
def stay_detail(request, stay_id: int):
    stay = stays.get_stay(stay_id)
    stays.ensure_stay_access(stay, request.user)
    data = stays.format_stay(stay)
    data['notes'] = [notes.format_note(n) for n in notes.list_notes(stay.id)]
    data['history'] = stays.stay_history(stay.id)
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsDoctorRole])
def stay_start_care(request, stay_id: int):
    stays.start_care(stay_id, request.user.id)
    return _stay_response(stay_id)


@api_view(['POST'])
@permission_classes([IsDoctorRole])
def stay_transfer_request(request, stay_id: int):
    s = TransferRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    stays.request_transfer(
        stay_id,
        request.user.id,
        s.validated_data.get('reason', ''),
        suggested_ward_id=s.validated_data.get('suggestedWardId'),
    )
    return _stay_response(stay_id)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def stay_transfer_complete(request, stay_id: int):
    s = BedAssignmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    stays.complete_transfer(
        stay_id,
        s.validated_data['wardId'],
        s.validated_data['roomId'],
        s.validated_data['bedId'],
        request.user.id,
    )
    return _stay_response(stay_id)


@api_view(['POST'])
@permission_classes([IsDoctorRole])
def stay_discharge_request(request, stay_id: int):
    s = DischargeRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    stays.request_discharge(stay_id, request.user.id, s.validated_data.get('dischargeSummary', ''))
    return _stay_response(stay_id)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def stay_discharge_approve(request, stay_id: int):
    stays.approve_discharge(stay_id, request.user.id)
    return _stay_response(stay_id)


@api_view(['POST'])
@permission_classes([IsDoctorRole])
def stay_treatment_plan(request, stay_id: int):
    s = TreatmentPlanSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    stays.update_treatment_plan(stay_id, request.user.id, s.validated_data['plan'])
    return _stay_response(stay_id)


@api_view(['GET', 'POST'])
@permission_classes([IsStaffRole])
def stay_notes(request, stay_id: int):
    if request.method == 'GET':
        stays.ensure_stay_access(stays.get_stay(stay_id), request.user)
        q = NoteListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items = notes.list_notes(stay_id, newest_first=q.validated_data.get('order') != 'asc')
        return Response({'ok': True, 'data': [notes.format_note(n) for n in items]})
    s = NoteCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    note = notes.add_note(stay_id, request.user.id, s.validated_data['text'])
    return Response({'ok': True, 'data': notes.format_note(note)}, status=201)
