"""
Occupancy figures derived from bed status.

Counts always come from actual Bed rows grouped in a single query, so
the totals, per-ward and per-room numbers describe the same instant.
The patient count rides on the same query through the bed -> stay
join, which is why every count is distinct.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from inpatient.exceptions import NotFoundError
from inpatient.models import Bed, Room, Stay, Ward
from inpatient.services.events import OCCUPANCY_CACHE_KEY

ALERT_CRITICAL_RATE = 90
ALERT_WARNING_RATE = 75


def occupancy_rate(occupied: int, total: int) -> float:
    if not total:
        return 0.0
    rate = Decimal(occupied) * 100 / Decimal(total)
    return float(rate.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def alert_level(rate: float) -> Optional[str]:
    if rate >= ALERT_CRITICAL_RATE:
        return 'critical'
    if rate >= ALERT_WARNING_RATE:
        return 'warning'
    return None


_COUNTS = dict(
    total=Count('id', distinct=True),
    occupied=Count('id', distinct=True, filter=Q(status=Bed.STATUS_OCCUPIED)),
    available=Count('id', distinct=True, filter=Q(status=Bed.STATUS_AVAILABLE)),
    reserved=Count('id', distinct=True, filter=Q(status=Bed.STATUS_RESERVED)),
    out_of_service=Count('id', distinct=True, filter=Q(status__in=Bed.OUT_OF_SERVICE)),
    patients=Count('stays', distinct=True, filter=Q(stays__status__in=Stay.ACTIVE_STATUSES)),
)

_TOTAL_KEYS = ('total', 'occupied', 'available', 'reserved', 'out_of_service', 'patients')


def _figures(row: Optional[dict]) -> dict:
    row = row or {}
    total = row.get('total', 0)
    occupied = row.get('occupied', 0)
    return {
        'totalBeds': total,
        'occupiedBeds': occupied,
        'availableBeds': row.get('available', 0),
        'reservedBeds': row.get('reserved', 0),
        'outOfServiceBeds': row.get('out_of_service', 0),
        'occupancyRate': occupancy_rate(occupied, total),
    }


def facility_snapshot() -> dict:
    """Facility-wide and per-ward bed figures."""
    with transaction.atomic():
        by_ward = {
            row['room__ward_id']: row
            for row in Bed.objects.order_by().values('room__ward_id').annotate(**_COUNTS)
        }
        wards = list(Ward.objects.order_by('name', 'id'))

    ward_items = []
    totals = dict.fromkeys(_TOTAL_KEYS, 0)
    for ward in wards:
        row = by_ward.get(ward.id)
        figures = _figures(row)
        for key in totals:
            totals[key] += (row or {}).get(key, 0)
        ward_items.append({
            'wardId': ward.id,
            'wardName': ward.name,
            'isActive': ward.is_active,
            'declaredTotalBeds': ward.total_beds,
            'capacityMismatch': ward.total_beds is not None and ward.total_beds != figures['totalBeds'],
            **figures,
            'alert': alert_level(figures['occupancyRate']),
            'currentPatientCount': (row or {}).get('patients', 0),
        })

    return {
        **_figures(totals),
        'wardCount': len(wards),
        'currentPatientCount': totals['patients'],
        'wards': ward_items,
        'cached': False,
        'computedAt': timezone.now().isoformat(),
    }


def ward_snapshot(ward_id) -> dict:
    """One ward's figures with a per-room breakdown."""
    ward = Ward.objects.filter(pk=ward_id).first()
    if not ward:
        raise NotFoundError('ward not found')
    with transaction.atomic():
        by_room = {
            row['room_id']: row
            for row in Bed.objects.filter(room__ward=ward).order_by().values('room_id').annotate(**_COUNTS)
        }
        rooms = list(Room.objects.filter(ward=ward).order_by('room_number', 'id'))

    totals = dict.fromkeys(_TOTAL_KEYS, 0)
    room_items = []
    for room in rooms:
        row = by_room.get(room.id)
        for key in totals:
            totals[key] += (row or {}).get(key, 0)
        room_items.append({
            'roomId': room.id,
            'roomNumber': room.room_number,
            'roomType': room.room_type,
            'isActive': room.is_active,
            **_figures(row),
        })
    figures = _figures(totals)
    return {
        'wardId': ward.id,
        'wardName': ward.name,
        'isActive': ward.is_active,
        'declaredTotalBeds': ward.total_beds,
        'capacityMismatch': ward.total_beds is not None and ward.total_beds != figures['totalBeds'],
        **figures,
        'alert': alert_level(figures['occupancyRate']),
        'currentPatientCount': totals['patients'],
        'rooms': room_items,
        'computedAt': timezone.now().isoformat(),
    }


def cached_facility_snapshot() -> dict:
    snapshot = cache.get(OCCUPANCY_CACHE_KEY)
    if snapshot is not None:
        return {**snapshot, 'cached': True}
    snapshot = facility_snapshot()
    cache.set(OCCUPANCY_CACHE_KEY, snapshot, getattr(settings, 'OCCUPANCY_CACHE_SECONDS', 30))
    return snapshot


def refresh_cached_snapshot() -> dict:
    cache.delete(OCCUPANCY_CACHE_KEY)
    return cached_facility_snapshot()
