from django.contrib import admin

from .models import (
    AccessDevelopment,
    DevelopmentLead,
    DevelopmentLog,
    DevelopmentPayment,
    InvestorLoan,
    LeadComment,
    QuoteConfig,
    ScheduledServiceOrder,
)


class DevelopmentPaymentInline(admin.TabularInline):
    model = DevelopmentPayment
    extra = 0
    fields = ("period", "due_date", "amount", "investor_portion", "company_portion", "status", "paid_at")
    readonly_fields = ("period", "due_date", "amount", "investor_portion", "company_portion")


@admin.register(AccessDevelopment)
class AccessDevelopmentAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "contact_name",
        "monthly_payment",
        "contract_start_date",
        "contract_duration_months",
        "has_investor",
        "status",
    )
    list_filter = ("status", "has_investor", "auto_generate_orders")
    search_fields = ("name", "contact_name", "investor_name")
    readonly_fields = ("investor_recovery_months", "investor_start_earning_date", "created_at", "updated_at")
    inlines = [DevelopmentPaymentInline]


@admin.register(InvestorLoan)
class InvestorLoanAdmin(admin.ModelAdmin):
    list_display = ("loan_number", "investor_name", "development", "amount", "amount_recovered", "amount_earned", "status")
    list_filter = ("status", "account_type")
    search_fields = ("loan_number", "investor_name", "development__name")


@admin.register(DevelopmentPayment)
class DevelopmentPaymentAdmin(admin.ModelAdmin):
    list_display = ("development", "period", "due_date", "amount", "is_recovery_period", "status", "paid_at")
    list_filter = ("status", "is_recovery_period")
    search_fields = ("development__name", "payment_reference")
    ordering = ("-due_date",)


@admin.register(ScheduledServiceOrder)
class ScheduledServiceOrderAdmin(admin.ModelAdmin):
    list_display = ("development", "scheduled_date", "status", "order", "generated_at")
    list_filter = ("status",)
    search_fields = ("development__name", "order__number")


class LeadCommentInline(admin.TabularInline):
    model = LeadComment
    extra = 0


@admin.register(DevelopmentLead)
class DevelopmentLeadAdmin(admin.ModelAdmin):
    list_display = ("name", "contact_name", "status", "monthly_payment_proposed", "reminder_date", "last_activity_at")
    list_filter = ("status", "has_investor")
    search_fields = ("name", "contact_name", "contact_email")
    inlines = [LeadCommentInline]


@admin.register(DevelopmentLog)
class DevelopmentLogAdmin(admin.ModelAdmin):
    list_display = ("development", "action", "message", "created_by", "created_at")
    list_filter = ("action",)
    search_fields = ("development__name", "message")


@admin.register(QuoteConfig)
class QuoteConfigAdmin(admin.ModelAdmin):
    list_display = ("key", "label", "value", "display_order")
    ordering = ("display_order",)
