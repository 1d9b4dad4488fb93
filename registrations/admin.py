"""Admin registrations for the festival registrations application."""
from django.contrib import admin

from . import models


@admin.register(models.Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("name", "roll_number", "department", "year")
    list_filter = ("year", "department")
    search_fields = ("name", "roll_number")


@admin.register(models.Event)
class EventAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "category",
        "mode",
        "registration_method",
        "max_entries_per_year",
        "min_team_size",
        "max_team_size",
        "registration_deadline",
        "is_active",
    )
    list_filter = ("category", "mode", "registration_method", "is_active")
    search_fields = ("name", "venue")


@admin.register(models.Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ("student", "event", "status", "group_id", "registered_by", "created_at")
    list_filter = ("status", "event__category", "student__year")
    search_fields = ("student__name", "student__roll_number", "event__name")
    readonly_fields = ("overridden", "created_at", "updated_at")


@admin.register(models.EventResult)
class EventResultAdmin(admin.ModelAdmin):
    list_display = ("registration", "participation", "position", "points")
    list_filter = ("participation", "position")
    readonly_fields = ("points",)


@admin.register(models.Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "updated_by", "updated_at")
    search_fields = ("key",)


@admin.register(models.Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "year", "student")
    list_filter = ("role", "year")
    search_fields = ("user__username", "student__name")


@admin.register(models.AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("ts", "action", "actor")
    list_filter = ("action", "ts")
    search_fields = ("action",)
