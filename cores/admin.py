from django.contrib import admin

from .models import AuditLog, PerformanceEvent, PlatformSetting

admin.site.register(PlatformSetting)


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'actor', 'action', 'target_model', 'target_object_id')
    list_filter = ('action',)


@admin.register(PerformanceEvent)
class PerformanceEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'event_type', 'entity_id', 'duration_ms', 'met_goal')
    list_filter = ('event_type', 'met_goal')
