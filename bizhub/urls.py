"""URL routing for the escrow service.


The /api/ namespace exposes the escrow triggers, the payment webhook and
read-only order/wallet views; /admin/ is Django's admin for inspection.
"""

from django.contrib import admin
from django.urls import path, include


urlpatterns = [
	path("admin/", admin.site.urls),
	path("api/", include("api.urls")),
]
