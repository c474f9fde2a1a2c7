from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from parties.api import payment_reminder_api

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("transport.urls", namespace="transport")),
    path("api/parties/", include("parties.urls", namespace="parties")),
    path("api/payment-reminder/", payment_reminder_api, name="payment_reminder"),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
