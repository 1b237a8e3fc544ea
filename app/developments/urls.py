"""
URLs de la app Developments - Acceso
Incluye: Contratos de fraccionamiento, Cobros, Avisos/Recibos, Inversionistas, Prospectos, Cotizador
"""
from django.urls import path
from . import views

app_name = 'developments'

urlpatterns = [
    # Contratos
    path('', views.development_list, name='development_list'),
    path('nuevo/', views.development_create, name='development_create'),
    path('cronograma/previsualizar/', views.schedule_preview, name='schedule_preview'),
    path('<uuid:pk>/', views.development_detail, name='development_detail'),
    path('<uuid:pk>/editar/', views.development_edit, name='development_edit'),
    path('<uuid:pk>/estado/', views.development_status, name='development_status'),
    path('<uuid:pk>/cronograma/completar/', views.development_sync_schedule, name='development_sync_schedule'),
    path('<uuid:pk>/cronograma/pdf/', views.development_schedule_pdf, name='development_schedule_pdf'),

    # Cobros
    path('cobros/', views.payment_list, name='payment_list'),
    path('cobros/<uuid:pk>/registrar/', views.payment_register, name='payment_register'),

    # Avisos y recibos
    path('avisos/', views.notice_list, name='notice_list'),
    path('avisos/<uuid:pk>/pdf/', views.notice_pdf, name='notice_pdf'),
    path('avisos/<uuid:pk>/enviar/', views.notice_send, name='notice_send'),
    path('recibos/', views.receipt_list, name='receipt_list'),
    path('recibos/<uuid:pk>/pdf/', views.receipt_pdf, name='receipt_pdf'),
    path('recibos/<uuid:pk>/enviar/', views.receipt_send, name='receipt_send'),

    # Inversionistas
    path('inversionistas/', views.investor_overview, name='investor_overview'),

    # Prospectos
    path('prospectos/', views.lead_list, name='lead_list'),
    path('prospectos/nuevo/', views.lead_create, name='lead_create'),
    path('prospectos/<int:pk>/', views.lead_detail, name='lead_detail'),
    path('prospectos/<int:pk>/editar/', views.lead_edit, name='lead_edit'),
    path('prospectos/<int:pk>/eliminar/', views.lead_delete, name='lead_delete'),
    path('prospectos/<int:pk>/comentarios/', views.lead_comment_add, name='lead_comment_add'),
    path('prospectos/<int:pk>/convertir/', views.lead_convert, name='lead_convert'),

    # Cotizador
    path('cotizador/', views.quote_calculator, name='quote_calculator'),
    path('cotizador/guardar/', views.quote_save_lead, name='quote_save_lead'),
    path('cotizador/precios/', views.quote_config, name='quote_config'),
]
