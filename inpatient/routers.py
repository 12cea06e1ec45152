"""
URL mappings for the inpatient admission API.

All API paths live under ``api/ipd/`` and omit trailing slashes.
"""
from django.urls import path, include

from .views import health
from .views.admissions import (
    admission_request_approve,
    admission_request_detail,
    admission_request_reject,
    admission_requests,
)
from .views.facility import (
    assignable_beds,
    bed_detail,
    beds,
    room_detail,
    rooms,
    ward_detail,
    wards,
)
from .views.occupancy import occupancy, ward_occupancy
from .views.stays import (
    stay_detail,
    stay_discharge_approve,
    stay_discharge_request,
    stay_list,
    stay_notes,
    stay_start_care,
    stay_transfer_complete,
    stay_transfer_request,
    stay_treatment_plan,
)

urlpatterns = [
    # facility registry
    path('api/ipd/wards', wards),
    path('api/ipd/wards/<int:ward_id>', ward_detail),
    path('api/ipd/rooms', rooms),
    path('api/ipd/rooms/<int:room_id>', room_detail),
    path('api/ipd/beds', beds),
    path('api/ipd/beds/assignable', assignable_beds),
    path('api/ipd/beds/<int:bed_id>', bed_detail),

    # occupancy
    path('api/ipd/occupancy', occupancy),
    path('api/ipd/occupancy/wards/<int:ward_id>', ward_occupancy),

    # admission requests
    path('api/ipd/admission-requests', admission_requests),
    path('api/ipd/admission-requests/<int:request_id>', admission_request_detail),
    path('api/ipd/admission-requests/<int:request_id>/approve', admission_request_approve),
    path('api/ipd/admission-requests/<int:request_id>/reject', admission_request_reject),

    # stays
    path('api/ipd/stays', stay_list),
    path('api/ipd/stays/<int:stay_id>', stay_detail),
    path('api/ipd/stays/<int:stay_id>/start-care', stay_start_care),
    path('api/ipd/stays/<int:stay_id>/transfer-request', stay_transfer_request),
    path('api/ipd/stays/<int:stay_id>/transfer-complete', stay_transfer_complete),
    path('api/ipd/stays/<int:stay_id>/discharge-request', stay_discharge_request),
    path('api/ipd/stays/<int:stay_id>/discharge-approve', stay_discharge_approve),
    path('api/ipd/stays/<int:stay_id>/treatment-plan', stay_treatment_plan),
    path('api/ipd/stays/<int:stay_id>/notes', stay_notes),

    # ops
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
]
