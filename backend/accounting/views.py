# accounting/views.py
"""
Thin views that delegate to the service modules.

Views handle: HTTP parsing, tenant lookup, response formatting.
Service modules handle: business rules, validation, persistence.

Every URL is tenant-scoped (/api/tenants/<slug>/accounting/...). The
gateway in front of this service authenticates the caller and scopes
the tenant; these views never write models directly.
"""

import logging

from django.db import transaction
from django.db.models import Exists, OuterRef
from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView, exception_handler

from accounting.exceptions import (
    ConflictError,
    LedgerError,
    LedgerIntegrityError,
    NotFound,
)
from accounting.models import Account, VoucherLine
from accounting.serializers import (
    AccountCreateSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
    AsOfQuerySerializer,
    BalanceSheetSerializer,
    DateRangeQuerySerializer,
    FiscalYearCreateSerializer,
    FiscalYearSerializer,
    LedgerQuerySerializer,
    LedgerReportSerializer,
    ProfitAndLossSerializer,
    TrialBalanceSerializer,
    VoucherCreateSerializer,
    VoucherFilterSerializer,
    VoucherListSerializer,
    VoucherSerializer,
    VoucherVoidSerializer,
)
from accounting import ledger, periods, registry, reports, vouchers
from tenant.models import Tenant

logger = logging.getLogger(__name__)


def ledger_exception_handler(exc, context):
    """
    DRF exception handler that maps ledger errors to HTTP responses.

    ValidationError -> 400, NotFound -> 404, ConflictError -> 409,
    LedgerIntegrityError -> 500. Anything else falls through to DRF.
    """
    if isinstance(exc, LedgerError):
        if isinstance(exc, NotFound):
            status_code = status.HTTP_404_NOT_FOUND
        elif isinstance(exc, ConflictError):
            status_code = status.HTTP_409_CONFLICT
        elif isinstance(exc, LedgerIntegrityError):
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            logger.error("Ledger integrity failure", extra={"error": exc.to_dict()})
        else:
            status_code = status.HTTP_400_BAD_REQUEST
        return Response(exc.to_dict(), status=status_code)

    return exception_handler(exc, context)


class TenantAPIView(APIView):
    """Base view: resolves the tenant from the URL."""

    def get_tenant(self) -> Tenant:
        return get_object_or_404(Tenant, slug=self.kwargs["tenant_slug"], is_active=True)

    def context_for(self, tenant) -> dict:
        return {"request": self.request, "tenant": tenant}


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(TenantAPIView):
    """
    GET /accounts/ -> list accounts (filters: type, include_inactive)
    POST /accounts/ -> create account
    """

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        include_inactive = request.query_params.get("include_inactive", "true").lower() != "false"
        accounts = registry.list_accounts(
            tenant,
            account_type=request.query_params.get("type") or None,
            include_inactive=include_inactive,
        )
        with_postings = set(
            VoucherLine.objects.filter(tenant=tenant).order_by().values_list("account_id", flat=True).distinct()
        )
        for account in accounts:
            account._has_transactions = account.id in with_postings
        return Response(AccountSerializer(accounts, many=True).data)

    def post(self, request, tenant_slug):
        tenant = self.get_tenant()
        serializer = AccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = registry.create_account(tenant, **serializer.validated_data)
        return Response(AccountSerializer(account).data, status=status.HTTP_201_CREATED)


class AccountDetailView(TenantAPIView):
    """
    GET /accounts/<pk>/ -> retrieve account
    PATCH /accounts/<pk>/ -> update account (status toggles activation)
    DELETE /accounts/<pk>/ -> delete account (no postings, no children, not system)
    """

    def get_object(self, tenant, pk):
        account = (
            Account.objects.filter(tenant=tenant, pk=pk)
            .annotate(_has_transactions=Exists(VoucherLine.objects.filter(account=OuterRef("pk"))))
            .select_related("parent")
            .first()
        )
        if account is None:
            raise Http404
        return account

    def get(self, request, tenant_slug, pk):
        tenant = self.get_tenant()
        return Response(AccountSerializer(self.get_object(tenant, pk)).data)

    def patch(self, request, tenant_slug, pk):
        tenant = self.get_tenant()
        serializer = AccountUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)

        new_status = changes.pop("status", None)
        with transaction.atomic():
            account = registry.update_account(tenant, pk, **changes)
            if new_status == Account.Status.INACTIVE:
                account = registry.deactivate_account(tenant, pk)
            elif new_status == Account.Status.ACTIVE:
                account = registry.reactivate_account(tenant, pk)

        return Response(AccountSerializer(account).data)

    def delete(self, request, tenant_slug, pk):
        tenant = self.get_tenant()
        registry.delete_account(tenant, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SetupDefaultAccountsView(TenantAPIView):
    """POST /accounts/setup-defaults/ -> seed the default school chart."""

    def post(self, request, tenant_slug):
        tenant = self.get_tenant()
        accounts = registry.setup_defaults(tenant)
        return Response(
            {
                "message": "Default accounts created",
                "accounts": AccountSerializer(accounts, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )


def _tree_payload(node) -> dict:
    account = node.account
    return {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "account_type": account.account_type,
        "status": account.status,
        "is_system": account.is_system,
        "children": [_tree_payload(child) for child in node.children],
    }


class AccountTreeView(TenantAPIView):
    """GET /accounts/tree/ -> nested chart of accounts."""

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        tree = registry.resolve_hierarchy(tenant)
        return Response([_tree_payload(root) for root in tree.roots])


# =============================================================================
# Voucher Views
# =============================================================================

class VoucherListCreateView(TenantAPIView):
    """
    GET /vouchers/ -> list vouchers (filters: start_date, end_date, type, status)
    POST /vouchers/ -> post a balanced voucher
    """

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        filters = VoucherFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        params = filters.validated_data
        result = vouchers.list_vouchers(
            tenant,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
            voucher_type=params.get("type"),
            status=params.get("status"),
        )
        return Response(VoucherListSerializer(result, many=True).data)

    def post(self, request, tenant_slug):
        tenant = self.get_tenant()
        serializer = VoucherCreateSerializer(data=request.data, context=self.context_for(tenant))
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        voucher = vouchers.post_voucher(
            tenant,
            data["voucher_type"],
            data["date"],
            data["description"],
            data["lines"],
            reference=data["reference"],
            source_module=data["source_module"],
            source_id=data["source_id"],
            created_by=request.headers.get("X-Actor", ""),
        )
        return Response(
            VoucherSerializer(voucher, context=self.context_for(tenant)).data,
            status=status.HTTP_201_CREATED,
        )


class VoucherDetailView(TenantAPIView):
    """GET /vouchers/<public_id>/ -> voucher with lines."""

    def get(self, request, tenant_slug, public_id):
        tenant = self.get_tenant()
        detail = vouchers.get_voucher(tenant, public_id)
        return Response(VoucherSerializer(detail.voucher, context=self.context_for(tenant)).data)


class VoucherVoidView(TenantAPIView):
    """
    POST /vouchers/<public_id>/void/ -> void and post the reversal

    Returns the reversing voucher.
    """

    def post(self, request, tenant_slug, public_id):
        tenant = self.get_tenant()
        serializer = VoucherVoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reversal = vouchers.void_voucher(
            tenant,
            public_id,
            serializer.validated_data["reason"],
            reversal_date=serializer.validated_data["reversal_date"],
            voided_by=request.headers.get("X-Actor", ""),
        )
        return Response(
            VoucherSerializer(reversal, context=self.context_for(tenant)).data,
            status=status.HTTP_201_CREATED,
        )


# =============================================================================
# Report Views
# =============================================================================

class LedgerReportView(TenantAPIView):
    """GET /reports/ledger/?account_id=&start_date=&end_date="""

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        query = LedgerQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        report = ledger.get_ledger(tenant, **query.validated_data)
        return Response(LedgerReportSerializer(report, context=self.context_for(tenant)).data)


class TrialBalanceView(TenantAPIView):
    """GET /reports/trial-balance/?as_of_date="""

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        query = AsOfQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        report = reports.trial_balance(tenant, query.validated_data.get("as_of_date"))
        return Response(TrialBalanceSerializer(report, context=self.context_for(tenant)).data)


class BalanceSheetView(TenantAPIView):
    """GET /reports/balance-sheet/?as_of_date= (defaults to today)"""

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        query = AsOfQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        as_of_date = query.validated_data.get("as_of_date") or timezone.localdate()
        report = reports.balance_sheet(tenant, as_of_date)
        return Response(BalanceSheetSerializer(report, context=self.context_for(tenant)).data)


class ProfitAndLossView(TenantAPIView):
    """GET /reports/profit-loss/?start_date=&end_date="""

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        query = DateRangeQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        report = reports.profit_and_loss(tenant, **query.validated_data)
        return Response(ProfitAndLossSerializer(report, context=self.context_for(tenant)).data)


# =============================================================================
# Fiscal Year Views
# =============================================================================

class FiscalYearListCreateView(TenantAPIView):
    """
    GET /fiscal-years/ -> list fiscal years
    POST /fiscal-years/ -> create a fiscal year
    """

    def get(self, request, tenant_slug):
        tenant = self.get_tenant()
        return Response(FiscalYearSerializer(periods.list_fiscal_years(tenant), many=True).data)

    def post(self, request, tenant_slug):
        tenant = self.get_tenant()
        serializer = FiscalYearCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        fiscal_year = periods.create_fiscal_year(tenant, **serializer.validated_data)
        return Response(FiscalYearSerializer(fiscal_year).data, status=status.HTTP_201_CREATED)


class FiscalYearCloseView(TenantAPIView):
    """POST /fiscal-years/<pk>/close/ and /fiscal-years/<pk>/reopen/"""

    closing = True

    def post(self, request, tenant_slug, pk):
        tenant = self.get_tenant()
        if self.closing:
            fiscal_year = periods.close_fiscal_year(tenant, pk)
        else:
            fiscal_year = periods.reopen_fiscal_year(tenant, pk)
        return Response(FiscalYearSerializer(fiscal_year).data)
