"""
Integration tests for the inpatient admission API.

These exercise the HTTP surface end to end: role checks, the error
envelope, the admission workflow and the stay lifecycle.  They use
Django REST Framework's APIClient within the APITestCase base class.
"""

from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from ..models import AdmissionRequest, Bed, Room, Stay, User, Ward


class InpatientAPITests(APITestCase):
    def setUp(self) -> None:
        """Create a ward with two beds plus one user per role."""
        self.admin = User.objects.create_user(username='admin1', password='P@ssw0rd1', role=User.ROLE_ADMIN)
        self.doctor = User.objects.create_user(username='doctor1', password='P@ssw0rd1', role=User.ROLE_DOCTOR)
        self.other_doctor = User.objects.create_user(username='doctor2', password='P@ssw0rd1', role=User.ROLE_DOCTOR)
        self.patient = User.objects.create_user(username='patient1', password='P@ssw0rd1', role=User.ROLE_PATIENT)

        self.ward = Ward.objects.create(name='General')
        self.room = Room.objects.create(ward=self.ward, room_number='101')
        self.bed_a = Bed.objects.create(room=self.room, bed_number='A')
        self.bed_b = Bed.objects.create(room=self.room, bed_number='B')

    def as_user(self, user) -> None:
        self.client.force_authenticate(user=user)

    def submit(self, **overrides) -> dict:
        self.as_user(self.doctor)
        body = {'patientId': self.patient.id, 'diagnosis': 'pneumonia', 'urgency': 'Normal'}
        body.update(overrides)
        resp = self.client.post('/api/ipd/admission-requests', body, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        return resp.data['data']

    def approve(self, request_id, bed=None):
        self.as_user(self.admin)
        bed = bed or self.bed_a
        return self.client.post(
            f'/api/ipd/admission-requests/{request_id}/approve',
            {'wardId': self.ward.id, 'roomId': self.room.id, 'bedId': bed.id},
            format='json',
        )

    # ------------------------------------------------------------------
    # auth and roles

    def test_anonymous_is_rejected(self) -> None:
        resp = self.client.get('/api/ipd/wards')
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.data['ok'])

    def test_token_header_authenticates(self) -> None:
        token = Token.objects.create(user=self.admin)
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
        resp = self.client.get('/api/ipd/wards')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['data'][0]['name'], 'General')

    def test_bearer_jwt_authenticates(self) -> None:
        token = AccessToken.for_user(self.doctor)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        resp = self.client.get('/api/ipd/rooms')
        self.assertEqual(resp.status_code, 200)

    def test_credentials_without_known_role_are_rejected(self) -> None:
        stray = User.objects.create_user(username='stray', password='P@ssw0rd1', role='')
        token = Token.objects.create(user=stray)
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
        resp = self.client.get('/api/ipd/stays')
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.data['ok'])

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {AccessToken.for_user(stray)}')
        self.assertEqual(self.client.get('/api/ipd/stays').status_code, 401)

    def test_patient_cannot_read_registry(self) -> None:
        self.as_user(self.patient)
        self.assertEqual(self.client.get('/api/ipd/beds').status_code, 403)

    def test_doctor_reads_but_cannot_write_registry(self) -> None:
        self.as_user(self.doctor)
        self.assertEqual(self.client.get('/api/ipd/rooms').status_code, 200)
        resp = self.client.post('/api/ipd/wards', {'name': 'ICU'}, format='json')
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data['error']['code'], 'permission_denied')

    # ------------------------------------------------------------------
    # facility registry

    def test_registry_crud_and_error_codes(self) -> None:
        self.as_user(self.admin)
        resp = self.client.post('/api/ipd/wards', {'name': 'ICU', 'totalBeds': 4}, format='json')
        self.assertEqual(resp.status_code, 201)
        ward_id = resp.data['data']['id']

        resp = self.client.post('/api/ipd/wards', {'name': 'ICU'}, format='json')
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data['error']['code'], 'conflict')

        resp = self.client.post('/api/ipd/rooms', {'wardId': ward_id, 'roomNumber': '1', 'roomType': 'ICU'}, format='json')
        self.assertEqual(resp.status_code, 201)
        room_id = resp.data['data']['id']

        resp = self.client.post('/api/ipd/beds', {'roomId': room_id, 'bedNumber': 'A', 'status': 'Occupied'}, format='json')
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data['error']['code'], 'invalid_state')

        resp = self.client.post('/api/ipd/beds', {'roomId': room_id, 'bedNumber': 'A'}, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['data']['wardName'], 'ICU')
        bed_id = resp.data['data']['id']

        resp = self.client.put(f'/api/ipd/beds/{bed_id}', {'status': 'Cleaning'}, format='json')
        self.assertEqual(resp.data['data']['status'], 'Cleaning')

        resp = self.client.put(f'/api/ipd/wards/{ward_id}', {'description': 'critical care'}, format='json')
        self.assertEqual(resp.data['data']['name'], 'ICU')
        self.assertEqual(resp.data['data']['description'], 'critical care')

        self.assertEqual(self.client.get('/api/ipd/wards/999999').status_code, 404)
        self.assertEqual(self.client.delete(f'/api/ipd/wards/{ward_id}').status_code, 200)
        self.assertFalse(Bed.objects.filter(pk=bed_id).exists())

    def test_serializer_errors_use_envelope(self) -> None:
        self.as_user(self.admin)
        resp = self.client.post('/api/ipd/rooms', {'roomNumber': '9'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['error']['code'], 'validation_error')

    # ------------------------------------------------------------------
    # admission workflow

    def test_admission_flow_over_http(self) -> None:
        req = self.submit(urgency='Emergency')
        self.assertEqual(req['status'], 'Pending')
        self.assertEqual(req['patientName'], 'patient1')

        self.as_user(self.admin)
        queue = self.client.get('/api/ipd/admission-requests').data['data']
        self.assertEqual([r['id'] for r in queue], [req['id']])

        resp = self.approve(req['id'])
        self.assertEqual(resp.status_code, 200, resp.data)
        stay = resp.data['data']['stay']
        self.assertEqual(stay['status'], 'Admitted')
        self.assertEqual(stay['bedId'], self.bed_a.id)
        self.assertEqual(resp.data['data']['request']['stayId'], stay['id'])

        resp = self.approve(req['id'])
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data['error']['code'], 'not_found')

        beds = self.client.get('/api/ipd/beds/assignable').data['data']
        self.assertEqual([b['id'] for b in beds], [self.bed_b.id])

        snap = self.client.get('/api/ipd/occupancy').data['data']
        self.assertEqual(snap['occupiedBeds'], 1)
        self.assertEqual(snap['wards'][0]['occupancyRate'], 50.0)

    def test_approve_taken_bed_is_invalid_state(self) -> None:
        first = self.submit()
        self.assertEqual(self.approve(first['id']).status_code, 200)
        other = User.objects.create_user(username='patient2', role=User.ROLE_PATIENT)
        second = self.submit(patientId=other.id)
        resp = self.approve(second['id'])
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data['error']['code'], 'invalid_state')
        self.assertEqual(AdmissionRequest.objects.get(pk=second['id']).status, 'Pending')

    def test_only_doctors_submit_and_only_admins_decide(self) -> None:
        self.as_user(self.admin)
        resp = self.client.post('/api/ipd/admission-requests', {'patientId': self.patient.id, 'diagnosis': 'x'}, format='json')
        self.assertEqual(resp.status_code, 403)
        req = self.submit()
        resp = self.client.post(f"/api/ipd/admission-requests/{req['id']}/reject", {'reason': 'no'}, format='json')
        self.assertEqual(resp.status_code, 403)
        self.as_user(self.admin)
        resp = self.client.post(f"/api/ipd/admission-requests/{req['id']}/reject", {'reason': 'no'}, format='json')
        self.assertEqual(resp.data['data']['status'], 'Rejected')
        self.assertEqual(resp.data['data']['rejectionReason'], 'no')

    # ------------------------------------------------------------------
    # stays

    def test_stay_lifecycle_over_http(self) -> None:
        req = self.submit()
        stay_id = self.approve(req['id']).data['data']['stay']['id']

        self.as_user(self.doctor)
        self.assertEqual(self.client.post(f'/api/ipd/stays/{stay_id}/start-care').data['data']['status'], 'UnderCare')
        resp = self.client.post(f'/api/ipd/stays/{stay_id}/notes', {'text': 'stable'}, format='json')
        self.assertEqual(resp.status_code, 201)
        resp = self.client.post(f'/api/ipd/stays/{stay_id}/treatment-plan', {'plan': 'rest'}, format='json')
        self.assertEqual(resp.data['data']['treatmentPlan'], 'rest')
        resp = self.client.post(f'/api/ipd/stays/{stay_id}/transfer-request', {'reason': 'quieter room'}, format='json')
        self.assertEqual(resp.data['data']['status'], 'TransferRequested')

        self.as_user(self.admin)
        resp = self.client.post(
            f'/api/ipd/stays/{stay_id}/transfer-complete',
            {'wardId': self.ward.id, 'roomId': self.room.id, 'bedId': self.bed_b.id},
            format='json',
        )
        self.assertEqual(resp.data['data']['bedId'], self.bed_b.id)

        self.as_user(self.doctor)
        resp = self.client.post(f'/api/ipd/stays/{stay_id}/discharge-request', {'dischargeSummary': 'resolved'}, format='json')
        self.assertEqual(resp.data['data']['status'], 'DischargeRequested')

        self.as_user(self.admin)
        resp = self.client.post(f'/api/ipd/stays/{stay_id}/discharge-approve')
        self.assertEqual(resp.data['data']['status'], 'Discharged')

        detail = self.client.get(f'/api/ipd/stays/{stay_id}').data['data']
        self.assertEqual([h['to'] for h in detail['history']],
                         ['Admitted', 'UnderCare', 'TransferRequested', 'UnderCare', 'DischargeRequested', 'Discharged'])
        self.assertEqual(detail['notes'][0]['text'], 'Discharge requested: resolved')
        self.assertEqual(Bed.objects.filter(status=Bed.STATUS_OCCUPIED).count(), 0)

        self.as_user(self.doctor)
        resp = self.client.post(f'/api/ipd/stays/{stay_id}/notes', {'text': 'late'}, format='json')
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data['error']['code'], 'invalid_state')
        notes = self.client.get(f'/api/ipd/stays/{stay_id}/notes?order=asc').data['data']
        self.assertEqual(notes[0]['text'], 'stable')

    def test_other_doctor_is_forbidden(self) -> None:
        req = self.submit()
        stay_id = self.approve(req['id']).data['data']['stay']['id']
        self.as_user(self.other_doctor)
        self.assertEqual(self.client.get(f'/api/ipd/stays/{stay_id}').status_code, 403)
        resp = self.client.post(f'/api/ipd/stays/{stay_id}/notes', {'text': 'hi'}, format='json')
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self.client.get('/api/ipd/stays').data['data'], [])
        self.as_user(self.doctor)
        self.assertEqual(len(self.client.get('/api/ipd/stays?status=active').data['data']), 1)
        self.assertEqual(Stay.objects.get(pk=stay_id).notes.count(), 0)

    def test_healthz(self) -> None:
        resp = self.client.get('/healthz')
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['ok'])
