# closures/admin.py

"""
Closures and postings are written only by the closure engine.
The admin is a read-only audit view.
"""

from django.contrib import admin

from closures.models import Closure, Posting


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class PostingInline(admin.TabularInline):
    model = Posting
    extra = 0
    can_delete = False
    readonly_fields = ("category", "amount", "period_key", "note", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Closure)
class ClosureAdmin(ReadOnlyAdmin):
    list_display = (
        "period_key",
        "kind",
        "branch",
        "sub_entity_id",
        "expected_value",
        "actual_value",
        "discrepancy",
        "created_at",
    )
    list_filter = ("kind", "branch")
    search_fields = ("period_key", "sub_entity_id")
    date_hierarchy = "period_start"
    inlines = [PostingInline]


@admin.register(Posting)
class PostingAdmin(ReadOnlyAdmin):
    list_display = ("period_key", "category", "amount", "source_closure", "created_at")
    list_filter = ("category",)
    search_fields = ("period_key", "note")
