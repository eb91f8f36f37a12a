# inventory/admin.py

"""
Admin rules:
- Ingredients are editable configuration.
- StockMovement rows are an append-only ledger: add is allowed, change and
  delete are not.
- StockLevel is maintained by monthly stock closes; read-only here.
"""

from django.contrib import admin

from inventory.models import Ingredient, StockLevel, StockMovement


@admin.register(Ingredient)
class IngredientAdmin(admin.ModelAdmin):
    list_display = ("name", "base_unit", "unit_cost", "pl_category", "is_active")
    list_filter = ("pl_category", "is_active")
    search_fields = ("name",)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "branch", "ingredient", "kind", "quantity", "source_closure")
    list_filter = ("kind", "branch")
    search_fields = ("ingredient__name", "note")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockLevel)
class StockLevelAdmin(admin.ModelAdmin):
    list_display = ("branch", "ingredient", "quantity", "unit", "counted_at", "updated_at")
    list_filter = ("branch",)
    search_fields = ("ingredient__name",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
