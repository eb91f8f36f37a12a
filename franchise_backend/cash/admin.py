# cash/admin.py

from django.contrib import admin

from cash.models import CashRegister, CashRegisterEvent


@admin.register(CashRegister)
class CashRegisterAdmin(admin.ModelAdmin):
    list_display = ("name", "branch", "is_active")
    list_filter = ("branch", "is_active")


@admin.register(CashRegisterEvent)
class CashRegisterEventAdmin(admin.ModelAdmin):
    list_display = ("occurred_at", "register", "kind", "amount", "performed_by")
    list_filter = ("kind", "register__branch")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
