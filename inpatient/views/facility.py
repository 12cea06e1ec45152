"""
Facility registry endpoints.

Staff (doctors and administrators) may read wards, rooms and beds;
only administrators may create, update or delete them.  Updates use
``PUT`` with partial bodies: keys that are absent are left unchanged.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from inpatient.permissions import IsStaffReadAdminWrite, IsStaffRole
from inpatient.serializers.facility import (
    AssignableBedQuerySerializer,
    BedListQuerySerializer,
    BedWriteSerializer,
    RoomListQuerySerializer,
    RoomWriteSerializer,
    WardListQuerySerializer,
    WardWriteSerializer,
)
from inpatient.services import facility

_WARD_FIELDS = {'name': 'name', 'description': 'description', 'totalBeds': 'total_beds', 'isActive': 'is_active'}
_ROOM_FIELDS = {'wardId': 'ward_id', 'roomNumber': 'room_number', 'roomType': 'room_type', 'isActive': 'is_active'}
_BED_FIELDS = {'bedNumber': 'bed_number', 'status': 'status'}


def _changes(data: dict, mapping: dict) -> dict:
    return {mapping[k]: v for k, v in data.items() if k in mapping}


@api_view(['GET', 'POST'])
@permission_classes([IsStaffReadAdminWrite])
def wards(request):
    if request.method == 'GET':
        q = WardListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items = facility.list_wards(active=q.validated_data.get('active'))
        return Response({'ok': True, 'data': [facility.format_ward(w) for w in items]})
    s = WardWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ward = facility.create_ward(actor_id=request.user.id, **_changes(s.validated_data, _WARD_FIELDS))
    return Response({'ok': True, 'data': facility.format_ward(ward)}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsStaffReadAdminWrite])
def ward_detail(request, ward_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': facility.format_ward(facility.get_ward(ward_id))})
    if request.method == 'DELETE':
        facility.delete_ward(ward_id, actor_id=request.user.id)
        return Response({'ok': True})
    s = WardWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    ward = facility.update_ward(ward_id, actor_id=request.user.id, **_changes(s.validated_data, _WARD_FIELDS))
    return Response({'ok': True, 'data': facility.format_ward(ward)})


@api_view(['GET', 'POST'])
@permission_classes([IsStaffReadAdminWrite])
def rooms(request):
    if request.method == 'GET':
        q = RoomListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items = facility.list_rooms(
            ward_id=q.validated_data.get('wardId'),
            room_type=q.validated_data.get('roomType'),
            active=q.validated_data.get('active'),
        )
        return Response({'ok': True, 'data': [facility.format_room(r) for r in items]})
    s = RoomWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    room = facility.create_room(actor_id=request.user.id, **_changes(s.validated_data, _ROOM_FIELDS))
    return Response({'ok': True, 'data': facility.format_room(room)}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsStaffReadAdminWrite])
def room_detail(request, room_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': facility.format_room(facility.get_room(room_id))})
    if request.method == 'DELETE':
        facility.delete_room(room_id, actor_id=request.user.id)
        return Response({'ok': True})
    s = RoomWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    room = facility.update_room(room_id, actor_id=request.user.id, **_changes(s.validated_data, _ROOM_FIELDS))
    return Response({'ok': True, 'data': facility.format_room(facility.get_room(room.id))})


@api_view(['GET', 'POST'])
@permission_classes([IsStaffReadAdminWrite])
def beds(request):
    if request.method == 'GET':
        q = BedListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items = facility.list_beds(
            room_id=q.validated_data.get('roomId'),
            ward_id=q.validated_data.get('wardId'),
            status=q.validated_data.get('status'),
        )
        return Response({'ok': True, 'data': [facility.format_bed(b) for b in items]})
    s = BedWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    bed = facility.create_bed(
        room_id=s.validated_data['roomId'],
        bed_number=s.validated_data['bedNumber'],
        status=s.validated_data.get('status'),
        actor_id=request.user.id,
    )
    return Response({'ok': True, 'data': facility.format_bed(facility.get_bed(bed.id))}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsStaffReadAdminWrite])
def bed_detail(request, bed_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': facility.format_bed(facility.get_bed(bed_id))})
    if request.method == 'DELETE':
        facility.delete_bed(bed_id, actor_id=request.user.id)
        return Response({'ok': True})
    s = BedWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    bed = facility.update_bed(bed_id, actor_id=request.user.id, **_changes(s.validated_data, _BED_FIELDS))
    return Response({'ok': True, 'data': facility.format_bed(facility.get_bed(bed.id))})


@api_view(['GET'])
@permission_classes([IsStaffRole])
def assignable_beds(request):
    q = AssignableBedQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = facility.list_assignable_beds(
        ward_id=q.validated_data.get('wardId'),
        room_type=q.validated_data.get('roomType'),
    )
    return Response({'ok': True, 'data': [facility.format_bed(b) for b in items]})
