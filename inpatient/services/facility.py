"""
Facility registry: wards, rooms and beds.

Referential rules are enforced here rather than left to callers.  A
ward, room or bed cannot be deleted while a non-terminal stay
references a bed underneath it, and the check runs in the same
transaction that holds row locks on those beds.  A bed only enters or
leaves ``Occupied`` through :func:`occupy_bed` / :func:`release_bed`,
which the stay lifecycle calls inside its own transactions.
"""
import logging
from typing import Optional, Iterable

from django.db import IntegrityError, transaction
from django.db.models import QuerySet

from inpatient.exceptions import ConflictError, DomainValidationError, InvalidStateError, NotFoundError
from inpatient.models import Bed, Room, Stay, Ward
from inpatient.services.audit import log_action
from inpatient.services.events import occupancy_changed
from inpatient.services.text import clean_text

logger = logging.getLogger(__name__)

_UNSET = object()

ROOM_TYPES = {value for value, _ in Room.TYPE_CHOICES}
BED_STATUSES = {value for value, _ in Bed.STATUS_CHOICES}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_ward(ward_id) -> Ward:
    ward = Ward.objects.filter(pk=ward_id).first()
    if not ward:
        raise NotFoundError('ward not found')
    return ward


def get_room(room_id) -> Room:
    room = Room.objects.select_related('ward').filter(pk=room_id).first()
    if not room:
        raise NotFoundError('room not found')
    return room


def get_bed(bed_id) -> Bed:
    bed = Bed.objects.select_related('room__ward').filter(pk=bed_id).first()
    if not bed:
        raise NotFoundError('bed not found')
    return bed


def _active_stays_on(beds: QuerySet) -> QuerySet:
    return Stay.objects.active().filter(bed__in=beds)


def _lock_beds(beds: QuerySet) -> list:
    # ascending pk so concurrent lockers never wait on each other in a cycle
    return list(beds.select_for_update().order_by('pk'))


def _refresh_location_labels(stays: QuerySet) -> int:
    """Rewrite ``location_label`` on active stays after a rename."""
    refreshed = 0
    for stay in stays.filter(bed__isnull=False).select_related('bed__room__ward').order_by('pk'):
        label = location_label(stay.bed)
        if label != stay.location_label:
            refreshed += Stay.objects.filter(pk=stay.pk).update(location_label=label)
    return refreshed


def _validate_total_beds(total_beds):
    if total_beds is None or total_beds == '':
        return None
    try:
        value = int(total_beds)
    except (TypeError, ValueError):
        raise DomainValidationError('totalBeds must be an integer')
    if value < 0:
        raise DomainValidationError('totalBeds cannot be negative')
    return value


# ---------------------------------------------------------------------------
# Wards
# ---------------------------------------------------------------------------

def list_wards(*, active: Optional[bool]=None) -> QuerySet:
    qs = Ward.objects.all()
    if active is not None:
        qs = qs.filter(is_active=active)
    return qs.order_by('name', 'id')


@transaction.atomic
def create_ward(*, name: str, description: str='', total_beds=None, is_active: bool=True, actor_id: Optional[int]=None) -> Ward:
    name = clean_text(name)
    if not name:
        raise DomainValidationError('ward name is required')
    if Ward.objects.filter(name=name).exists():
        raise ConflictError('a ward with this name already exists')
    ward = Ward.objects.create(
        name=name,
        description=clean_text(description),
        total_beds=_validate_total_beds(total_beds),
        is_active=bool(is_active),
    )
    log_action(user_id=actor_id, action='ward_create', object_type='ward', object_id=ward.id, detail={'name': ward.name})
    logger.info('ward %s created (%s)', ward.id, ward.name)
    return ward


@transaction.atomic
def update_ward(ward_id, *, name=_UNSET, description=_UNSET, total_beds=_UNSET, is_active=_UNSET, actor_id: Optional[int]=None) -> Ward:
    ward = Ward.objects.select_for_update().filter(pk=ward_id).first()
    if not ward:
        raise NotFoundError('ward not found')
    changed = []
    if name is not _UNSET:
        name = clean_text(name)
        if not name:
            raise DomainValidationError('ward name is required')
        if name != ward.name and Ward.objects.filter(name=name).exclude(pk=ward.pk).exists():
            raise ConflictError('a ward with this name already exists')
        ward.name = name
        changed.append('name')
    if description is not _UNSET:
        ward.description = clean_text(description)
        changed.append('description')
    if total_beds is not _UNSET:
        ward.total_beds = _validate_total_beds(total_beds)
        changed.append('total_beds')
    if is_active is not _UNSET:
        ward.is_active = bool(is_active)
        changed.append('is_active')
    if changed:
        ward.save(update_fields=changed + ['updated_at'])
        if 'name' in changed:
            _refresh_location_labels(Stay.objects.active().filter(bed__room__ward=ward))
        log_action(user_id=actor_id, action='ward_update', object_type='ward', object_id=ward.id, detail={'fields': changed})
    return ward


@transaction.atomic
def delete_ward(ward_id, *, actor_id: Optional[int]=None) -> None:
    ward = Ward.objects.select_for_update().filter(pk=ward_id).first()
    if not ward:
        raise NotFoundError('ward not found')
    beds = _lock_beds(Bed.objects.filter(room__ward=ward))
    active = _active_stays_on(Bed.objects.filter(pk__in=[b.pk for b in beds])).count()
    if active:
        raise ConflictError(f'ward has {active} admitted patient(s); discharge or transfer them first')
    name = ward.name
    ward.delete()
    log_action(user_id=actor_id, action='ward_delete', object_type='ward', object_id=int(ward_id), detail={'name': name})
    occupancy_changed('ward_deleted', ward_ids=[int(ward_id)])
    logger.info('ward %s deleted (%s)', ward_id, name)


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------

def list_rooms(*, ward_id=None, room_type: Optional[str]=None, active: Optional[bool]=None) -> QuerySet:
    qs = Room.objects.select_related('ward')
    if ward_id:
        qs = qs.filter(ward_id=ward_id)
    if room_type:
        qs = qs.filter(room_type=room_type)
    if active is not None:
        qs = qs.filter(is_active=active)
    return qs.order_by('ward__name', 'room_number', 'id')


def _validate_room_type(room_type) -> str:
    if room_type not in ROOM_TYPES:
        raise DomainValidationError(f'unknown room type: {room_type}')
    return room_type


@transaction.atomic
def create_room(*, ward_id, room_number: str, room_type: Optional[str]=None, is_active: bool=True, actor_id: Optional[int]=None) -> Room:
    ward = get_ward(ward_id)
    room_number = clean_text(room_number)
    if not room_number:
        raise DomainValidationError('room number is required')
    room_type = _validate_room_type(room_type or Room.TYPE_GENERAL)
    if Room.objects.filter(ward=ward, room_number=room_number).exists():
        raise ConflictError('room number already exists in this ward')
    try:
        with transaction.atomic():
            room = Room.objects.create(ward=ward, room_number=room_number, room_type=room_type, is_active=bool(is_active))
    except IntegrityError:
        raise ConflictError('room number already exists in this ward')
    log_action(user_id=actor_id, action='room_create', object_type='room', object_id=room.id,
               detail={'wardId': ward.id, 'roomNumber': room.room_number})
    return room


@transaction.atomic
def update_room(room_id, *, ward_id=_UNSET, room_number=_UNSET, room_type=_UNSET, is_active=_UNSET, actor_id: Optional[int]=None) -> Room:
    room = Room.objects.select_for_update().filter(pk=room_id).first()
    if not room:
        raise NotFoundError('room not found')
    changed = []
    target_ward_id = room.ward_id
    if ward_id is not _UNSET and ward_id is not None and int(ward_id) != room.ward_id:
        target = get_ward(ward_id)
        beds = _lock_beds(Bed.objects.filter(room=room))
        if _active_stays_on(Bed.objects.filter(pk__in=[b.pk for b in beds])).exists():
            raise ConflictError('cannot move a room with admitted patients to another ward')
        room.ward = target
        target_ward_id = target.id
        changed.append('ward')
    if room_number is not _UNSET:
        room_number = clean_text(room_number)
        if not room_number:
            raise DomainValidationError('room number is required')
        room.room_number = room_number
        changed.append('room_number')
    if ('ward' in changed or 'room_number' in changed) and Room.objects.filter(
        ward_id=target_ward_id, room_number=room.room_number
    ).exclude(pk=room.pk).exists():
        raise ConflictError('room number already exists in this ward')
    if room_type is not _UNSET:
        room.room_type = _validate_room_type(room_type)
        changed.append('room_type')
    if is_active is not _UNSET:
        room.is_active = bool(is_active)
        changed.append('is_active')
    if changed:
        room.save(update_fields=changed + ['updated_at'])
        if 'room_number' in changed:
            _refresh_location_labels(Stay.objects.active().filter(bed__room=room))
        log_action(user_id=actor_id, action='room_update', object_type='room', object_id=room.id, detail={'fields': changed})
        if 'ward' in changed:
            occupancy_changed('room_moved', ward_ids=[target_ward_id])
    return room


@transaction.atomic
def delete_room(room_id, *, actor_id: Optional[int]=None) -> None:
    room = Room.objects.select_for_update().filter(pk=room_id).first()
    if not room:
        raise NotFoundError('room not found')
    beds = _lock_beds(Bed.objects.filter(room=room))
    if _active_stays_on(Bed.objects.filter(pk__in=[b.pk for b in beds])).exists():
        raise ConflictError('room has admitted patients; discharge or transfer them first')
    ward_id = room.ward_id
    room.delete()
    log_action(user_id=actor_id, action='room_delete', object_type='room', object_id=int(room_id), detail={'wardId': ward_id})
    occupancy_changed('room_deleted', ward_ids=[ward_id])


# ---------------------------------------------------------------------------
# Beds
# ---------------------------------------------------------------------------

def list_beds(*, room_id=None, ward_id=None, status: Optional[str]=None) -> QuerySet:
    qs = Bed.objects.select_related('room__ward')
    if room_id:
        qs = qs.filter(room_id=room_id)
    if ward_id:
        qs = qs.filter(room__ward_id=ward_id)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('room__ward__name', 'room__room_number', 'bed_number', 'id')


def list_assignable_beds(*, ward_id=None, room_type: Optional[str]=None) -> QuerySet:
    """Available beds in active rooms of active wards."""
    qs = list_beds(ward_id=ward_id, status=Bed.STATUS_AVAILABLE).filter(
        room__is_active=True, room__ward__is_active=True,
    )
    if room_type:
        qs = qs.filter(room__room_type=room_type)
    return qs


def _validate_bed_status(status: str) -> str:
    if status not in BED_STATUSES:
        raise DomainValidationError(f'unknown bed status: {status}')
    if status == Bed.STATUS_OCCUPIED:
        raise InvalidStateError('beds become Occupied only through an admission or transfer')
    return status


@transaction.atomic
def create_bed(*, room_id, bed_number: str, status: Optional[str]=None, actor_id: Optional[int]=None) -> Bed:
    room = get_room(room_id)
    bed_number = clean_text(bed_number)
    if not bed_number:
        raise DomainValidationError('bed number is required')
    status = _validate_bed_status(status or Bed.STATUS_AVAILABLE)
    if Bed.objects.filter(room=room, bed_number=bed_number).exists():
        raise ConflictError('bed number already exists in this room')
    try:
        with transaction.atomic():
            bed = Bed.objects.create(room=room, bed_number=bed_number, status=status)
    except IntegrityError:
        raise ConflictError('bed number already exists in this room')
    log_action(user_id=actor_id, action='bed_create', object_type='bed', object_id=bed.id,
               detail={'roomId': room.id, 'bedNumber': bed.bed_number})
    occupancy_changed('bed_created', ward_ids=[room.ward_id], bed_ids=[bed.id])
    return bed


@transaction.atomic
def update_bed(bed_id, *, bed_number=_UNSET, status=_UNSET, actor_id: Optional[int]=None) -> Bed:
    """Direct staff edit of a bed.

    ``status`` may be Available, Reserved, Cleaning or Maintenance.
    Setting Occupied, or moving an occupied bed to anything else, is an
    :class:`InvalidStateError`: those transitions belong to the stay
    lifecycle.
    """
    bed = Bed.objects.select_for_update().select_related('room').filter(pk=bed_id).first()
    if not bed:
        raise NotFoundError('bed not found')
    changed = []
    if bed_number is not _UNSET:
        bed_number = clean_text(bed_number)
        if not bed_number:
            raise DomainValidationError('bed number is required')
        if Bed.objects.filter(room_id=bed.room_id, bed_number=bed_number).exclude(pk=bed.pk).exists():
            raise ConflictError('bed number already exists in this room')
        bed.bed_number = bed_number
        changed.append('bed_number')
    old_status = bed.status
    if status is not _UNSET and status != bed.status:
        status = _validate_bed_status(status)
        if bed.status == Bed.STATUS_OCCUPIED or Stay.objects.active().filter(bed=bed).exists():
            raise InvalidStateError('bed is occupied; discharge or transfer the patient first')
        bed.status = status
        changed.append('status')
    if changed:
        bed.save(update_fields=changed + ['updated_at'])
        if 'bed_number' in changed:
            _refresh_location_labels(Stay.objects.active().filter(bed=bed))
        log_action(user_id=actor_id, action='bed_update', object_type='bed', object_id=bed.id,
                   detail={'fields': changed, 'from': old_status, 'to': bed.status})
        if 'status' in changed:
            occupancy_changed('bed_status', ward_ids=[bed.room.ward_id], bed_ids=[bed.id])
    return bed


@transaction.atomic
def delete_bed(bed_id, *, actor_id: Optional[int]=None) -> None:
    bed = Bed.objects.select_for_update().select_related('room').filter(pk=bed_id).first()
    if not bed:
        raise NotFoundError('bed not found')
    if Stay.objects.active().filter(bed=bed).exists():
        raise ConflictError('bed is assigned to an admitted patient')
    ward_id = bed.room.ward_id
    bed.delete()
    log_action(user_id=actor_id, action='bed_delete', object_type='bed', object_id=int(bed_id), detail={'wardId': ward_id})
    occupancy_changed('bed_deleted', ward_ids=[ward_id], bed_ids=[int(bed_id)])


# ---------------------------------------------------------------------------
# Allocation primitives (called inside stay lifecycle transactions)
# ---------------------------------------------------------------------------

def lock_target_bed(*, ward_id, room_id, bed_id) -> Bed:
    """Lock and validate the bed an admission or transfer will occupy.

    Must be called inside ``transaction.atomic``.  The ward/room/bed ids
    must describe one chain; the ward and room must be active and the
    bed must be Available at this instant.
    """
    bed = Bed.objects.select_for_update().filter(pk=bed_id).first()
    if not bed:
        raise NotFoundError('bed not found')
    room = Room.objects.select_related('ward').get(pk=bed.room_id)
    if str(room.id) != str(room_id) or str(room.ward_id) != str(ward_id):
        raise DomainValidationError('bed does not belong to the given ward and room')
    if not room.ward.is_active or not room.is_active:
        raise InvalidStateError('ward or room is not accepting admissions')
    if bed.status != Bed.STATUS_AVAILABLE:
        logger.warning('bed %s refused: status is %s', bed.id, bed.status)
        raise InvalidStateError(f'bed is not available (status: {bed.status})')
    bed.room = room
    return bed


def occupy_bed(bed: Bed) -> None:
    """Compare-and-swap Available -> Occupied."""
    updated = Bed.objects.filter(pk=bed.pk, status=Bed.STATUS_AVAILABLE).update(status=Bed.STATUS_OCCUPIED)
    if updated != 1:
        logger.warning('bed %s lost allocation race', bed.pk)
        raise InvalidStateError('bed is no longer available')
    bed.status = Bed.STATUS_OCCUPIED


def release_bed(bed: Optional[Bed]) -> None:
    """Compare-and-swap Occupied -> Available."""
    if bed is None:
        return
    updated = Bed.objects.filter(pk=bed.pk, status=Bed.STATUS_OCCUPIED).update(status=Bed.STATUS_AVAILABLE)
    if updated != 1:
        raise InvalidStateError(f'bed {bed.pk} is not occupied')
    bed.status = Bed.STATUS_AVAILABLE


def lock_beds_in_order(bed_ids: Iterable[int]) -> dict:
    ids = sorted({int(b) for b in bed_ids if b is not None})
    return {b.pk: b for b in _lock_beds(Bed.objects.filter(pk__in=ids))}


def location_label(bed: Bed) -> str:
    room = bed.room
    return f"{room.ward.name} / {room.room_number} / {bed.bed_number}"


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_ward(ward: Ward) -> dict:
    return {
        'id': ward.id,
        'name': ward.name,
        'description': ward.description,
        'totalBeds': ward.total_beds,
        'isActive': ward.is_active,
        'createdAt': ward.created_at.isoformat() if ward.created_at else None,
    }


def format_room(room: Room) -> dict:
    return {
        'id': room.id,
        'wardId': room.ward_id,
        'wardName': room.ward.name if room.ward_id else None,
        'roomNumber': room.room_number,
        'roomType': room.room_type,
        'isActive': room.is_active,
    }


def format_bed(bed: Bed) -> dict:
    room = bed.room
    return {
        'id': bed.id,
        'bedNumber': bed.bed_number,
        'status': bed.status,
        'roomId': bed.room_id,
        'roomNumber': room.room_number,
        'roomType': room.room_type,
        'wardId': room.ward_id,
        'wardName': room.ward.name,
    }
