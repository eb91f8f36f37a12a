# sales/admin.py

from django.contrib import admin

from sales.models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "branch", "status", "sales_channel", "payment_method", "total", "created_at")
    list_filter = ("status", "sales_channel", "payment_method", "branch")
    date_hierarchy = "created_at"
    inlines = [OrderItemInline]
