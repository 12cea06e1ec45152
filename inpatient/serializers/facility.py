from rest_framework import serializers

from inpatient.models import Bed, Room

ROOM_TYPE_CHOICES = [value for value, _ in Room.TYPE_CHOICES]
BED_STATUS_CHOICES = [value for value, _ in Bed.STATUS_CHOICES]


class WardWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    totalBeds = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    isActive = serializers.BooleanField(required=False)


class WardListQuerySerializer(serializers.Serializer):
    active = serializers.BooleanField(required=False, allow_null=True, default=None)


class RoomWriteSerializer(serializers.Serializer):
    wardId = serializers.IntegerField(min_value=1)
    roomNumber = serializers.CharField(max_length=20)
    roomType = serializers.ChoiceField(choices=ROOM_TYPE_CHOICES, required=False)
    isActive = serializers.BooleanField(required=False)


class RoomListQuerySerializer(serializers.Serializer):
    wardId = serializers.IntegerField(min_value=1, required=False)
    roomType = serializers.ChoiceField(choices=ROOM_TYPE_CHOICES, required=False)
    active = serializers.BooleanField(required=False, allow_null=True, default=None)


class BedWriteSerializer(serializers.Serializer):
    roomId = serializers.IntegerField(min_value=1)
    bedNumber = serializers.CharField(max_length=20)
    # Occupied is rejected by the service with invalid_state, not here
    status = serializers.ChoiceField(choices=BED_STATUS_CHOICES, required=False)


class BedListQuerySerializer(serializers.Serializer):
    roomId = serializers.IntegerField(min_value=1, required=False)
    wardId = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=BED_STATUS_CHOICES, required=False)


class AssignableBedQuerySerializer(serializers.Serializer):
    wardId = serializers.IntegerField(min_value=1, required=False)
    roomType = serializers.ChoiceField(choices=ROOM_TYPE_CHOICES, required=False)
