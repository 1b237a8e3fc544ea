from django.urls import path

from . import api_views


app_name = "developments_api"

urlpatterns = [
    path(
        "procesar-ordenes",
        api_views.api_process_access_orders,
        name="procesar_ordenes",
    ),
]
