"""
URLs de la app Orders - Acceso
Incluye: Órdenes de servicio, Clientes
"""
from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    path('', views.order_list, name='order_list'),
    path('<int:pk>/', views.order_detail, name='order_detail'),
    path('clientes/', views.client_list, name='client_list'),
]
