from urllib.parse import urlsplit

from django.conf import settings
from storages.backends.s3boto3 import S3Boto3Storage


class PrivateMediaStorage(S3Boto3Storage):
    """Bucket privado para comprobantes de pago; siempre entrega URLs firmadas."""

    bucket_name = settings.AWS_PRIVATE_MEDIA_BUCKET
    default_acl = "private"
    querystring_auth = True
    # custom_domain=None obliga a django-storages a firmar las URLs
    custom_domain = None

    def url(self, name, parameters=None, expire=None, http_method=None):
        signed_url = super().url(
            name,
            parameters=parameters,
            expire=expire,
            http_method=http_method,
        )

        # El backend firma contra el endpoint interno (minio:9000); el navegador necesita el público
        public_host = getattr(settings, "AWS_S3_PRIVATE_CUSTOM_DOMAIN", "")
        parsed = urlsplit(signed_url)
        if not public_host or not parsed.netloc:
            return signed_url

        protocol = getattr(settings, "AWS_S3_URL_PROTOCOL", "https:").rstrip(":")
        return parsed._replace(scheme=protocol, netloc=public_host.split("/")[0]).geturl()
