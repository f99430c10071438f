"""
Tenant context middleware.

Ledger URLs carry the tenant slug (/api/tenants/<slug>/accounting/...).
Authentication and tenant scoping happen upstream; this middleware only
records the slug for logging and clears it when the request ends.
"""
from tenant.context import clear_tenant_context, set_tenant_context
from tenant.models import Tenant


class TenantContextMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        try:
            return self.get_response(request)
        finally:
            clear_tenant_context()

    def process_view(self, request, view_func, view_args, view_kwargs):
        slug = view_kwargs.get("tenant_slug")
        if not slug:
            return None
        tenant = Tenant.objects.filter(slug=slug, is_active=True).only("id", "slug").first()
        if tenant is not None:
            set_tenant_context(tenant_id=tenant.pk, slug=tenant.slug)
        return None
