# branches/admin.py

from django.contrib import admin

from branches.models import Branch, BranchShift


class BranchShiftInline(admin.TabularInline):
    model = BranchShift
    extra = 0


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ("name", "timezone", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    inlines = [BranchShiftInline]
