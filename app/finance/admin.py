from django.contrib import admin

from .models import Income, PendingCollection


@admin.register(Income)
class IncomeAdmin(admin.ModelAdmin):
    list_display = ("income_number", "income_date", "amount", "payment_method", "account_type", "status")
    list_filter = ("status", "account_type", "payment_method", "category")
    search_fields = ("income_number", "description", "reference")
    ordering = ("-income_date",)


@admin.register(PendingCollection)
class PendingCollectionAdmin(admin.ModelAdmin):
    list_display = ("client_name", "collection_type", "amount", "due_date", "status")
    list_filter = ("status", "collection_type")
    search_fields = ("client_name", "client_email", "notes")
