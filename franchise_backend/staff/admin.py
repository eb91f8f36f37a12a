# staff/admin.py

from django.contrib import admin

from staff.models import AttendanceLog, Employee


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ("full_name", "branch", "is_active")
    list_filter = ("branch", "is_active")
    search_fields = ("full_name",)


@admin.register(AttendanceLog)
class AttendanceLogAdmin(admin.ModelAdmin):
    list_display = ("occurred_at", "employee", "branch", "kind")
    list_filter = ("kind", "branch")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
