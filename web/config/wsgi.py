import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()

# Process-scoped store and uploads root, built once before serving
from apps.orders import providers  # noqa: E402

providers.warm_up()
