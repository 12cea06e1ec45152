from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from inpatient.permissions import IsStaffRole
from inpatient.services.occupancy import cached_facility_snapshot, facility_snapshot, ward_snapshot


@api_view(['GET'])
@permission_classes([IsStaffRole])
def occupancy(request):
    if request.query_params.get('cached') in ('1', 'true', 'True'):
        data = cached_facility_snapshot()
    else:
        data = facility_snapshot()
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsStaffRole])
def ward_occupancy(request, ward_id: int):
    return Response({'ok': True, 'data': ward_snapshot(ward_id)})
