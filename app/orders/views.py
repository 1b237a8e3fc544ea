from django.core.paginator import Paginator
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404, render

from .models import Client, Order


def order_list(request):
    query = (request.GET.get("q") or "").strip()
    status = (request.GET.get("status") or "").strip()

    orders_qs = Order.objects.select_related("client", "service_type").order_by("-created_at")
    if query:
        orders_qs = orders_qs.filter(
            Q(number__icontains=query) | Q(client__name__icontains=query)
        )
    if status:
        orders_qs = orders_qs.filter(status=status)

    paginator = Paginator(orders_qs, 25)
    return render(request, "orders/order_list.html", {
        "page_obj": paginator.get_page(request.GET.get("page")),
        "query": query,
        "status": status,
        "status_choices": Order.Status.choices,
    })


def order_detail(request, pk):
    order = get_object_or_404(
        Order.objects.select_related("client", "service_type", "created_by"),
        pk=pk,
    )
    return render(request, "orders/order_detail.html", {
        "order": order,
        "items": order.items.all(),
        "scheduled": order.scheduled_services.select_related("development").first(),
    })


def client_list(request):
    query = (request.GET.get("q") or "").strip()
    clients_qs = Client.objects.annotate(orders_count=Count("orders")).order_by("name")
    if query:
        clients_qs = clients_qs.filter(
            Q(name__icontains=query) | Q(email__icontains=query) | Q(phone__icontains=query)
        )
    paginator = Paginator(clients_qs, 25)
    return render(request, "orders/client_list.html", {
        "page_obj": paginator.get_page(request.GET.get("page")),
        "query": query,
    })
