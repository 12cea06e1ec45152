from rest_framework import serializers

from inpatient.models import URGENCY_CHOICES, URGENCY_NORMAL, AdmissionRequest, Room

URGENCY_VALUES = [value for value, _ in URGENCY_CHOICES]


class AdmissionSubmitSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    diagnosis = serializers.CharField(max_length=5000)
    treatmentPlan = serializers.CharField(max_length=5000, required=False, allow_blank=True, allow_null=True)
    urgency = serializers.ChoiceField(choices=URGENCY_VALUES, required=False, default=URGENCY_NORMAL)
    recommendedWardId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    recommendedRoomType = serializers.ChoiceField(
        choices=[value for value, _ in Room.TYPE_CHOICES], required=False, allow_null=True, allow_blank=True
    )


class AdmissionListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[value for value, _ in AdmissionRequest.STATUS_CHOICES] + ['all'],
        required=False, default=AdmissionRequest.STATUS_PENDING,
    )
    doctorId = serializers.IntegerField(min_value=1, required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)


class BedAssignmentSerializer(serializers.Serializer):
    wardId = serializers.IntegerField(min_value=1)
    roomId = serializers.IntegerField(min_value=1)
    bedId = serializers.IntegerField(min_value=1)


class AdmissionRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')
