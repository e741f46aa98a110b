from django.conf import settings
from django.urls import include, path, re_path
from django.views.static import serve


def serve_upload(request, path):
    """Serve a stored payment proof, linked from ``orders.payment_proof``."""
    return serve(request, path, document_root=settings.UPLOADS_ROOT)


urlpatterns = [
    path("api/", include("apps.orders.urls")),
    path("api/", include("apps.monitoring.urls")),
    re_path(r"^uploads/(?P<path>.+)$", serve_upload, name="uploads"),
]

handler404 = "apps.orders.responses.not_found"
