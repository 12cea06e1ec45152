"""
Django admin registrations for the inpatient models.

Bed status and stay status are shown read-only: they only move through
the admission, transfer and discharge services, which keep the two in
step.  Ward, room and bed deletes go through the facility services so
the active-stay check and bed locks apply; stays and admission requests
cannot be deleted here.  Daily notes and audit events are append-only
records.
"""

from django.contrib import admin, messages

from .exceptions import ConflictError, NotFoundError
from .models import (
    AdmissionRequest,
    AuditEvent,
    Bed,
    DailyNote,
    Room,
    Stay,
    StayTransition,
    User,
    Ward,
)
from .services import facility


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'first_name', 'last_name', 'is_staff')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


class FacilityAdmin(admin.ModelAdmin):
    """Deletes run through a facility service and are refused while patients are admitted."""
    delete_service = None

    def active_stays(self, obj):
        raise NotImplementedError

    def has_delete_permission(self, request, obj=None):
        if obj is not None and self.active_stays(obj).exists():
            return False
        return super().has_delete_permission(request, obj)

    def _delete(self, request, obj):
        try:
            self.delete_service(obj.pk, actor_id=request.user.id)
        except (ConflictError, NotFoundError) as exc:
            self.message_user(request, f'{obj}: {exc.detail}', level=messages.ERROR)

    def delete_model(self, request, obj):
        self._delete(request, obj)

    def delete_queryset(self, request, queryset):
        for obj in queryset.order_by('pk'):
            self._delete(request, obj)


@admin.register(Ward)
class WardAdmin(FacilityAdmin):
    list_display = ('id', 'name', 'total_beds', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)
    delete_service = staticmethod(facility.delete_ward)

    def active_stays(self, obj):
        return Stay.objects.active().filter(bed__room__ward=obj)


@admin.register(Room)
class RoomAdmin(FacilityAdmin):
    list_display = ('id', 'ward', 'room_number', 'room_type', 'is_active')
    list_filter = ('ward', 'room_type', 'is_active')
    delete_service = staticmethod(facility.delete_room)

    def active_stays(self, obj):
        return Stay.objects.active().filter(bed__room=obj)


@admin.register(Bed)
class BedAdmin(FacilityAdmin):
    list_display = ('id', 'room', 'bed_number', 'status')
    list_filter = ('status',)
    readonly_fields = ('status',)
    delete_service = staticmethod(facility.delete_bed)

    def active_stays(self, obj):
        return Stay.objects.active().filter(bed=obj)


@admin.register(AdmissionRequest)
class AdmissionRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'urgency', 'status', 'requested_at', 'decided_at')
    list_filter = ('status', 'urgency')
    readonly_fields = ('status', 'decided_at', 'decided_by')

    def has_delete_permission(self, request, obj=None):
        return False


class StayTransitionInline(admin.TabularInline):
    model = StayTransition
    extra = 0
    can_delete = False
    readonly_fields = ('from_status', 'to_status', 'actor', 'reason', 'timestamp')


@admin.register(Stay)
class StayAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'location_label', 'status', 'admitted_at', 'discharged_at')
    list_filter = ('status', 'ward')
    readonly_fields = ('status', 'ward', 'room', 'bed', 'location_label')
    inlines = [StayTransitionInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(DailyNote)
class DailyNoteAdmin(admin.ModelAdmin):
    list_display = ('id', 'stay', 'doctor', 'created_at')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'object_type', 'object_id', 'user')
    list_filter = ('action', 'object_type')
