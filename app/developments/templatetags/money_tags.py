from django import template

from core.formatting import format_money, month_label

register = template.Library()


@register.filter
def money(value):
    return format_money(value)


@register.filter
def month_name(value):
    if not value:
        return ""
    return month_label(value)


@register.simple_tag
def payment_status(payment, today):
    return payment.display_status(today)
