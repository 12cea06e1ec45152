"""
Database models for the inpatient admission service.

The facility hierarchy (ward -> room -> bed) is administrator managed
reference data.  Admission requests, stays and daily notes hold the
clinical workflow.  Bed status and stay status are explicit enum
fields; every lifecycle decision is read from them, never inferred
from free text.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone


class User(AbstractUser):
    """Projection of the identity service's user with a role.

    Roles: 'patient', 'doctor' and 'admin'.  The identity service owns
    these records; this service only stores ids and display fields.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Ward(models.Model):
    """Top-level unit of inpatient care (e.g. 'ICU').

    ``total_beds`` is the declared capacity.  It is informational only;
    occupancy figures always count actual :class:`Bed` rows.
    """
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    total_beds = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name', 'id']

    def __str__(self) -> str:
        return self.name


class Room(models.Model):
    TYPE_SINGLE = 'Single'
    TYPE_DOUBLE = 'Double'
    TYPE_ICU = 'ICU'
    TYPE_MATERNITY = 'Maternity'
    TYPE_PEDIATRIC = 'Pediatric'
    TYPE_EMERGENCY = 'Emergency'
    TYPE_GENERAL = 'General'
    TYPE_CHOICES = [
        (TYPE_SINGLE, 'Single'),
        (TYPE_DOUBLE, 'Double'),
        (TYPE_ICU, 'ICU'),
        (TYPE_MATERNITY, 'Maternity'),
        (TYPE_PEDIATRIC, 'Pediatric'),
        (TYPE_EMERGENCY, 'Emergency'),
        (TYPE_GENERAL, 'General'),
    ]

    ward = models.ForeignKey(Ward, on_delete=models.CASCADE, related_name='rooms')
    room_number = models.CharField(max_length=20)
    room_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_GENERAL)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['ward_id', 'room_number', 'id']
        constraints = [
            models.UniqueConstraint(fields=['ward', 'room_number'], name='uniq_room_number_per_ward'),
        ]

    def __str__(self) -> str:
        return f"Room {self.room_number} ({self.ward_id})"


class Bed(models.Model):
    STATUS_AVAILABLE = 'Available'
    STATUS_OCCUPIED = 'Occupied'
    STATUS_RESERVED = 'Reserved'
    STATUS_CLEANING = 'Cleaning'
    STATUS_MAINTENANCE = 'Maintenance'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_OCCUPIED, 'Occupied'),
        (STATUS_RESERVED, 'Reserved'),
        (STATUS_CLEANING, 'Cleaning'),
        (STATUS_MAINTENANCE, 'Maintenance'),
    ]
    # Statuses staff may set by direct edit; Occupied only moves with a stay.
    STAFF_SETTABLE = {STATUS_AVAILABLE, STATUS_RESERVED, STATUS_CLEANING, STATUS_MAINTENANCE}
    OUT_OF_SERVICE = {STATUS_CLEANING, STATUS_MAINTENANCE}

    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name='beds')
    bed_number = models.CharField(max_length=20)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_AVAILABLE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['room_id', 'bed_number', 'id']
        constraints = [
            models.UniqueConstraint(fields=['room', 'bed_number'], name='uniq_bed_number_per_room'),
        ]

    def __str__(self) -> str:
        return f"Bed {self.bed_number} ({self.room_id}) [{self.status}]"


URGENCY_NORMAL = 'Normal'
URGENCY_EMERGENCY = 'Emergency'
URGENCY_CHOICES = [
    (URGENCY_NORMAL, 'Normal'),
    (URGENCY_EMERGENCY, 'Emergency'),
]


class AdmissionRequest(models.Model):
    """A doctor's proposal that a patient be admitted.

    Pending until an administrator approves it (with a bed) or rejects
    it.  Approved and Rejected are terminal.
    """
    STATUS_PENDING = 'Pending'
    STATUS_APPROVED = 'Approved'
    STATUS_REJECTED = 'Rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='admission_requests_made')
    patient = models.ForeignKey(User, on_delete=models.PROTECT, related_name='admission_requests')
    diagnosis = models.TextField()
    treatment_plan = models.TextField(blank=True, null=True)
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default=URGENCY_NORMAL, db_index=True)
    recommended_ward = models.ForeignKey(
        Ward, null=True, blank=True, on_delete=models.SET_NULL, related_name='admission_requests'
    )
    recommended_room_type = models.CharField(max_length=20, choices=Room.TYPE_CHOICES, blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    rejection_reason = models.TextField(blank=True, null=True)
    requested_at = models.DateTimeField(default=timezone.now)
    decided_at = models.DateTimeField(null=True, blank=True)
    decided_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='admission_decisions'
    )

    class Meta:
        indexes = [
            models.Index(fields=['status', 'urgency', 'requested_at'], name='ipd_request_triage_idx'),
            models.Index(fields=['patient', 'status'], name='ipd_request_patient_idx'),
        ]

    @property
    def is_decided(self) -> bool:
        return self.status != self.STATUS_PENDING

    def __str__(self) -> str:
        return f"AdmissionRequest #{self.pk} p={self.patient_id} [{self.status}]"


class StayQuerySet(models.QuerySet):
    def active(self):
        return self.exclude(status=Stay.STATUS_DISCHARGED)


class Stay(models.Model):
    """One patient's continuous inpatient episode.

    ``ward``, ``room`` and ``bed`` are a denormalized copy of the bed's
    parent chain.  They are only written by the transactions that admit,
    transfer or discharge the stay.
    """
    STATUS_ADMITTED = 'Admitted'
    STATUS_UNDER_CARE = 'UnderCare'
    STATUS_TRANSFER_REQUESTED = 'TransferRequested'
    STATUS_DISCHARGE_REQUESTED = 'DischargeRequested'
    STATUS_DISCHARGED = 'Discharged'
    STATUS_CHOICES = [
        (STATUS_ADMITTED, 'Admitted'),
        (STATUS_UNDER_CARE, 'Under care'),
        (STATUS_TRANSFER_REQUESTED, 'Transfer requested'),
        (STATUS_DISCHARGE_REQUESTED, 'Discharge requested'),
        (STATUS_DISCHARGED, 'Discharged'),
    ]
    ACTIVE_STATUSES = (
        STATUS_ADMITTED,
        STATUS_UNDER_CARE,
        STATUS_TRANSFER_REQUESTED,
        STATUS_DISCHARGE_REQUESTED,
    )
    TRANSITIONS = {
        STATUS_ADMITTED: [STATUS_UNDER_CARE, STATUS_TRANSFER_REQUESTED, STATUS_DISCHARGE_REQUESTED],
        STATUS_UNDER_CARE: [STATUS_TRANSFER_REQUESTED, STATUS_DISCHARGE_REQUESTED],
        STATUS_TRANSFER_REQUESTED: [STATUS_UNDER_CARE, STATUS_DISCHARGE_REQUESTED],
        STATUS_DISCHARGE_REQUESTED: [STATUS_DISCHARGED],
        STATUS_DISCHARGED: [],
    }

    patient = models.ForeignKey(User, on_delete=models.PROTECT, related_name='stays')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='stays_admitted')
    admission_request = models.OneToOneField(
        AdmissionRequest, null=True, blank=True, on_delete=models.SET_NULL, related_name='stay'
    )
    ward = models.ForeignKey(Ward, null=True, blank=True, on_delete=models.SET_NULL, related_name='stays')
    room = models.ForeignKey(Room, null=True, blank=True, on_delete=models.SET_NULL, related_name='stays')
    bed = models.ForeignKey(Bed, null=True, blank=True, on_delete=models.SET_NULL, related_name='stays')
    location_label = models.CharField(max_length=255, blank=True)
    primary_diagnosis = models.TextField()
    treatment_plan = models.TextField(blank=True, null=True)
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default=URGENCY_NORMAL)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ADMITTED, db_index=True)
    transfer_reason = models.TextField(blank=True, null=True)
    suggested_ward = models.ForeignKey(
        Ward, null=True, blank=True, on_delete=models.SET_NULL, related_name='suggested_transfers'
    )
    discharge_summary = models.TextField(blank=True, null=True)
    admitted_at = models.DateTimeField(default=timezone.now)
    discharged_at = models.DateTimeField(null=True, blank=True)
    discharged_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='discharges_approved'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StayQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'status'], name='ipd_stay_doctor_idx'),
            models.Index(fields=['patient', 'status'], name='ipd_stay_patient_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['bed'],
                condition=~Q(status='Discharged'),
                name='uniq_active_stay_per_bed',
            ),
            models.UniqueConstraint(
                fields=['patient'],
                condition=~Q(status='Discharged'),
                name='uniq_active_stay_per_patient',
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status != self.STATUS_DISCHARGED

    def can_transition(self, new_status: str) -> bool:
        return new_status in self.TRANSITIONS.get(self.status, [])

    def __str__(self) -> str:
        return f"Stay #{self.pk} p={self.patient_id} [{self.status}]"


class StayTransition(models.Model):
    """Records a status change of a stay."""
    stay = models.ForeignKey(Stay, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    actor = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='stay_transitions')
    reason = models.TextField(blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['timestamp', 'id']

    def __str__(self) -> str:
        return f"{self.stay_id}: {self.from_status} → {self.to_status}"


class AppendOnlyError(Exception):
    pass


class DailyNote(models.Model):
    """A clinical progress note.  Notes are never edited or deleted."""
    stay = models.ForeignKey(Stay, on_delete=models.PROTECT, related_name='notes')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='daily_notes')
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [models.Index(fields=['stay', 'created_at'], name='ipd_note_stay_idx')]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError('daily notes are append-only')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError('daily notes are append-only')

    def __str__(self) -> str:
        return f"note {self.pk} stay={self.stay_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='ipd_audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='ipd_audit_object_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}#{self.object_id}"
