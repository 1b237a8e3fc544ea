"""
URL configuration for config project - Acceso
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Apps
    path('', include('users.urls')),                          # Auth, dashboard, usuarios
    path('fraccionamientos/', include('developments.urls')),  # Contratos, cobros, prospectos
    path('ordenes/', include('orders.urls')),                 # Órdenes de servicio, clientes
    path('finanzas/', include('finance.urls')),               # Ingresos, cobranza pendiente
    path(
        "api/fraccionamientos/",
        include(("developments.api_urls", "developments_api"), namespace="developments_api"),
    ),
]

# NOTA: Whitenoise sirve los estáticos en producción; los comprobantes de pago
# viven en el bucket privado de MinIO/S3 y se sirven con URL firmada.
