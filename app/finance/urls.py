"""
URLs de la app Finance - Acceso
Incluye: Ingresos, Cobranza pendiente
"""
from django.urls import path
from . import views

app_name = 'finance'

urlpatterns = [
    path('ingresos/', views.income_list, name='income_list'),
    path('ingresos/exportar/', views.income_export_csv, name='income_export_csv'),
    path('cobranza-pendiente/', views.collection_list, name='collection_list'),
]
