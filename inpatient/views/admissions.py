"""
Admission request endpoints.

Doctors submit requests and see the ones they made; administrators see
the whole triage queue and approve (with a bed) or reject.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from inpatient.models import User
from inpatient.permissions import IsAdminRole, IsStaffRole
from inpatient.serializers.admissions import (
    AdmissionListQuerySerializer,
    AdmissionRejectSerializer,
    AdmissionSubmitSerializer,
    BedAssignmentSerializer,
)
from inpatient.services import admissions
from inpatient.services.stays import format_stay


@api_view(['GET', 'POST'])
@permission_classes([IsStaffRole])
def admission_requests(request):
    user: User = request.user
    if request.method == 'GET':
        q = AdmissionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        doctor_id = q.validated_data.get('doctorId')
        if user.role == User.ROLE_DOCTOR:
            doctor_id = user.id
        items = admissions.list_requests(
            status=q.validated_data.get('status'),
            doctor_id=doctor_id,
            patient_id=q.validated_data.get('patientId'),
        )
        return Response({'ok': True, 'data': [admissions.format_request(r) for r in items]})

    if user.role != User.ROLE_DOCTOR:
        raise PermissionDenied('only doctors submit admission requests')
    s = AdmissionSubmitSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    d = s.validated_data
    req = admissions.submit_request(
        user.id,
        d['patientId'],
        d['diagnosis'],
        treatment_plan=d.get('treatmentPlan'),
        urgency=d.get('urgency'),
        recommended_ward_id=d.get('recommendedWardId'),
        recommended_room_type=d.get('recommendedRoomType') or None,
    )
    return Response({'ok': True, 'data': admissions.format_request(admissions.get_request(req.id))}, status=201)


@api_view(['GET'])
@permission_classes([IsStaffRole])
def admission_request_detail(request, request_id: int):
    req = admissions.get_request(request_id)
    if request.user.role == User.ROLE_DOCTOR and req.doctor_id != request.user.id:
        raise PermissionDenied('not allowed to view this request')
    return Response({'ok': True, 'data': admissions.format_request(req)})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admission_request_approve(request, request_id: int):
    s = BedAssignmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req, stay = admissions.approve_request(
        request_id,
        s.validated_data['wardId'],
        s.validated_data['roomId'],
        s.validated_data['bedId'],
        request.user.id,
    )
    return Response({
        'ok': True,
        'data': {
            'request': admissions.format_request(admissions.get_request(req.id)),
            'stay': format_stay(stay),
        },
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admission_request_reject(request, request_id: int):
    s = AdmissionRejectSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req = admissions.reject_request(request_id, request.user.id, s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': admissions.format_request(admissions.get_request(req.id))})
