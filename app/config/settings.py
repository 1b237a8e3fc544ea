"""
Django settings for config project.
"""
import os
from pathlib import Path
from django.core.exceptions import ImproperlyConfigured

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# ==========================================
# 1. CORE SETTINGS
# ==========================================

# Lee la secret key del entorno, o usa una insegura solo si no existe (para dev)
SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-dev-key-change-in-prod')

# DEBUG debe ser True solo si la variable es 'True'
DEBUG = os.environ.get('DEBUG', 'True') == 'True'

# Hosts permitidos separados por coma
ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1,0.0.0.0').split(',')


# ==========================================
# 2. INSTALLED APPS
# ==========================================
INSTALLED_APPS = [
    "unfold",  # Admin moderno
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django.contrib.humanize",

    # Third Party
    "storages",      # MinIO / S3
    "widget_tweaks", # Forms
    "django_htmx",   # HTMX

    # Local Apps (Módulos)
    "users",
    "orders",
    "finance",
    "developments",
]

# Modelo de Usuario Personalizado
AUTH_USER_MODEL = 'users.User'

LOGIN_URL = "users:login"
LOGIN_REDIRECT_URL = "users:dashboard"
LOGOUT_REDIRECT_URL = "users:login"


# ==========================================
# 3. MIDDLEWARE
# ==========================================
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    "whitenoise.middleware.WhiteNoiseMiddleware",
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'users.middleware.RolePermissionMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    "django_htmx.middleware.HtmxMiddleware",
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'], # Carpeta global de templates
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
                'users.context_processors.due_lead_reminders_count',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'


# ==========================================
# 4. DATABASE (PostgreSQL)
# ==========================================
# Sin POSTGRES_DB se usa SQLite local (desarrollo y pruebas)
if os.environ.get('POSTGRES_DB'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ.get('POSTGRES_DB'),
            'USER': os.environ.get('POSTGRES_USER', 'admin'),
            'PASSWORD': os.environ.get('POSTGRES_PASSWORD', 'admin'),
            'HOST': os.environ.get('DB_HOST', 'db'),
            'PORT': os.environ.get('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }


# ==========================================
# 5. PASSWORD VALIDATION
# ==========================================
AUTH_PASSWORD_VALIDATORS = [
    { 'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator', },
    { 'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', },
    { 'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator', },
    { 'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator', },
]


# ==========================================
# 6. LOCALIZATION
# ==========================================
LANGUAGE_CODE = 'es-mx'
TIME_ZONE = 'America/Mexico_City'
USE_I18N = True
USE_TZ = True


# ==========================================
# 7. STATIC & MEDIA FILES (Whitenoise + MinIO)
# ==========================================

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

STATICFILES_DIRS = [
    BASE_DIR / 'static',
]

# Configuración de MinIO (S3)
AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID', '')
AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY', '')
if DEBUG:
    AWS_ACCESS_KEY_ID = AWS_ACCESS_KEY_ID or 'minioadmin'
    AWS_SECRET_ACCESS_KEY = AWS_SECRET_ACCESS_KEY or 'minioadmin'
elif not AWS_ACCESS_KEY_ID or not AWS_SECRET_ACCESS_KEY:
    raise ImproperlyConfigured(
        "Faltan credenciales S3/MinIO: define AWS_ACCESS_KEY_ID y AWS_SECRET_ACCESS_KEY."
    )
AWS_S3_ENDPOINT_URL = os.environ.get('AWS_S3_ENDPOINT_URL', 'http://minio:9000')
# Host público opcional solo para URLs firmadas del bucket privado
AWS_S3_PRIVATE_CUSTOM_DOMAIN = os.environ.get('AWS_S3_PRIVATE_CUSTOM_DOMAIN', '')
AWS_S3_URL_PROTOCOL = os.environ.get('AWS_S3_URL_PROTOCOL', 'https:')
AWS_S3_ADDRESSING_STYLE = 'path'
AWS_S3_SIGNATURE_VERSION = os.environ.get('AWS_S3_SIGNATURE_VERSION', 's3v4')

# Comprobantes de pago solo en bucket privado (URLs firmadas)
AWS_PRIVATE_MEDIA_BUCKET = os.environ.get('AWS_PRIVATE_MEDIA_BUCKET', 'acceso-media-private')

STORAGES = {
    "default": {
        "BACKEND": "storages.backends.s3boto3.S3Boto3Storage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

# ==========================================
# 8. UNFOLD ADMIN UI (Personalización)
# ==========================================
UNFOLD = {
    "SITE_TITLE": "Acceso",
    "SITE_HEADER": "Panel Administrativo",
    "SITE_URL": "/",
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ==========================================
# 9. EMAIL (avisos y recibos de pago)
# ==========================================
EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = os.environ.get('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(os.environ.get('EMAIL_PORT', '587'))
EMAIL_HOST_USER = os.environ.get('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.environ.get('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = os.environ.get('EMAIL_USE_TLS', 'True') == 'True'
DEFAULT_FROM_EMAIL = os.environ.get('DEFAULT_FROM_EMAIL', 'cobranza@acceso.local')


# ==========================================
# 10. EMPRESA Y FRACCIONAMIENTOS
# ==========================================
COMPANY_NAME = os.environ.get('COMPANY_NAME', 'Acceso')
COMPANY_ADDRESS = os.environ.get('COMPANY_ADDRESS', '')
COMPANY_PHONE = os.environ.get('COMPANY_PHONE', '')
COMPANY_EMAIL = os.environ.get('COMPANY_EMAIL', DEFAULT_FROM_EMAIL)

# Días entre la firma del contrato y la orden de instalación inicial
ACCESS_INSTALLATION_LEAD_DAYS = int(os.environ.get('ACCESS_INSTALLATION_LEAD_DAYS', '25'))
# Último día seleccionable para pago y servicio (válido en todos los meses)
ACCESS_MAX_BILLING_DAY = 28

# ==========================================
# 11. API PROCESAMIENTO (cron / integraciones)
# ==========================================
ACCESS_API_TOKEN = os.environ.get("ACCESS_API_TOKEN", "")


# ==========================================
# 12. LOGGING
# ==========================================
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            "propagate": False,
        },
        "developments": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "finance": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "orders": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "users": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
