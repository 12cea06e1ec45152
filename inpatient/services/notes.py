from typing import List

from django.db import transaction

from inpatient.exceptions import DomainValidationError, InvalidStateError
from inpatient.models import DailyNote
from inpatient.services.audit import log_action
from inpatient.services.stays import ensure_admitting_doctor, get_stay, lock_stay
from inpatient.services.text import clean_text


@transaction.atomic
def add_note(stay_id, doctor_id, text: str) -> DailyNote:
    text = clean_text(text)
    if not text:
        raise DomainValidationError('note text is required')
    stay = lock_stay(stay_id)
    ensure_admitting_doctor(stay, doctor_id)
    if not stay.is_active:
        raise InvalidStateError('notes cannot be added to a discharged stay')
    note = DailyNote.objects.create(stay=stay, doctor_id=doctor_id, text=text)
    log_action(user_id=doctor_id, action='note_add', object_type='stay', object_id=stay.id, detail={'noteId': note.id})
    return note


def list_notes(stay_id, newest_first: bool=True) -> List[DailyNote]:
    """Notes of a stay, newest first unless ``newest_first`` is False."""
    stay = get_stay(stay_id)
    order = ('-created_at', '-id') if newest_first else ('created_at', 'id')
    return list(DailyNote.objects.filter(stay=stay).select_related('doctor').order_by(*order))


def format_note(note: DailyNote) -> dict:
    return {
        'id': note.id,
        'stayId': note.stay_id,
        'doctorId': note.doctor_id,
        'doctorName': note.doctor.display_name if note.doctor_id else None,
        'text': note.text,
        'createdAt': note.created_at.isoformat(),
    }
