# parties/urls.py
from django.urls import path

from . import api

app_name = "parties"

urlpatterns = [
    path("", api.party_collection, name="party_collection"),
    path("<int:pk>/", api.party_detail, name="party_detail"),
]
