from rest_framework import serializers

from inpatient.models import Stay

STAY_STATUS_FILTERS = [value for value, _ in Stay.STATUS_CHOICES] + ['active']


class StayListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STAY_STATUS_FILTERS, required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)
    wardId = serializers.IntegerField(min_value=1, required=False)
    mine = serializers.BooleanField(required=False, default=False)


class TransferRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')
    suggestedWardId = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class DischargeRequestSerializer(serializers.Serializer):
    dischargeSummary = serializers.CharField(max_length=10000, required=False, allow_blank=True, default='')


class TreatmentPlanSerializer(serializers.Serializer):
    # blank plans are rejected by the service
    plan = serializers.CharField(max_length=10000, allow_blank=True)


class NoteCreateSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=10000, allow_blank=True)


class NoteListQuerySerializer(serializers.Serializer):
    order = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='desc')
