from django.urls import include, path

urlpatterns = [
    # Operations endpoints (no auth required)
    path("_health/", include("ops.urls")),

    # Ledger API, always scoped to one tenant
    path("api/tenants/<slug:tenant_slug>/accounting/", include("accounting.urls")),
]
