"""
URLs de la app Users - Acceso
Incluye: Login, Logout, Dashboard, Usuarios, Roles
"""
from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # Autenticación
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),

    # Landing & Dashboard
    path('', views.landing_view, name='landing'),
    path('dashboard/', views.dashboard_view, name='dashboard'),

    # Administración de usuarios
    path('roles-permisos/', views.role_permissions_view, name='role_permissions'),
    path('usuarios/', views.user_list_view, name='user_list'),
    path('usuarios/nuevo/', views.user_create_view, name='user_create'),
    path('usuarios/<int:pk>/editar/', views.user_edit_view, name='user_edit'),
    path('usuarios/<int:pk>/toggle/', views.user_toggle_active, name='user_toggle_active'),
]
