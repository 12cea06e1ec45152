import pytest

from inpatient.exceptions import DomainValidationError, NotFoundError
from inpatient.models import AppendOnlyError, DailyNote
from inpatient.services import notes

pytestmark = pytest.mark.django_db


def test_add_and_order_notes(admitted_stay, doctor):
    first = notes.add_note(admitted_stay.id, doctor.id, 'day 1: stable')
    second = notes.add_note(admitted_stay.id, doctor.id, 'day 2: <b>improving</b>')
    assert second.text == 'day 2: improving'

    newest = notes.list_notes(admitted_stay.id)
    assert [n.id for n in newest] == [second.id, first.id]
    oldest = notes.list_notes(admitted_stay.id, newest_first=False)
    assert [n.id for n in oldest] == [first.id, second.id]


def test_blank_note_rejected(admitted_stay, doctor):
    with pytest.raises(DomainValidationError):
        notes.add_note(admitted_stay.id, doctor.id, '   ')
    with pytest.raises(NotFoundError):
        notes.add_note(999999, doctor.id, 'x')
    assert DailyNote.objects.count() == 0


def test_notes_are_append_only(admitted_stay, doctor):
    note = notes.add_note(admitted_stay.id, doctor.id, 'original')
    note.text = 'edited'
    with pytest.raises(AppendOnlyError):
        note.save()
    with pytest.raises(AppendOnlyError):
        note.delete()
    assert DailyNote.objects.get(pk=note.pk).text == 'original'


def test_format_note(admitted_stay, doctor):
    data = notes.format_note(notes.add_note(admitted_stay.id, doctor.id, 'ok'))
    assert data['doctorName'] == 'Ada Lovelace'
    assert data['stayId'] == admitted_stay.id


def test_note_text_keeps_comparison_signs(admitted_stay, doctor):
    note = notes.add_note(admitted_stay.id, doctor.id, 'BP < 90 & HR > 120')
    assert note.text == 'BP < 90 & HR > 120'
