from django import template

from users.permissions import user_has_permission

register = template.Library()


@register.filter
def can_access(user, permission_key):
    if not permission_key:
        return False
    return user_has_permission(user, str(permission_key))


@register.filter
def can_access_any(user, permission_keys):
    """Uso: {% if user|can_access_any:"developments:payment_list,developments:receipt_list" %}"""
    keys = [k.strip() for k in str(permission_keys or "").split(",") if k.strip()]
    return any(user_has_permission(user, key) for key in keys)
