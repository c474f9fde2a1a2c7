# transport/urls.py
from django.urls import path

from . import api

app_name = "transport"

urlpatterns = [
    # Bilties
    path("bilties/", api.bilty_collection, name="bilty_collection"),
    path("bilties/export/", api.bilty_export, name="bilty_export"),
    path("bilties/bulk-import/", api.bilty_bulk_import, name="bilty_bulk_import"),
    path("bilties/suggestions/", api.bilty_suggestions, name="bilty_suggestions"),
    path("bilties/<int:pk>/", api.bilty_detail, name="bilty_detail"),
    path("bilties/<int:pk>/pdf/", api.bilty_pdf, name="bilty_pdf"),

    # Dashboard
    path("dashboard/stats/", api.dashboard, name="dashboard_stats"),

    # Challans
    path("challans/", api.challan_collection, name="challan_collection"),
    path("challans/<int:pk>/", api.challan_detail, name="challan_detail"),
    path("challans/<int:pk>/pdf/", api.challan_pdf, name="challan_pdf"),
]
