from django.contrib import admin

from .models import Client, ServiceType, Order, OrderItem


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("name", "address", "phone", "email", "created_at")
    search_fields = ("name", "email", "phone")


@admin.register(ServiceType)
class ServiceTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active")
    list_filter = ("is_active",)


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("number", "client", "service_type", "status", "estimated_cost", "delivery_date")
    list_filter = ("status", "service_type")
    search_fields = ("number", "client__name")
    ordering = ("-created_at",)
    inlines = [OrderItemInline]
