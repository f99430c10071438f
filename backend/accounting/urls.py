# accounting/urls.py
"""
URL configuration for the accounting API.

Mounted under /api/tenants/<tenant_slug>/accounting/.

Endpoints:
- /accounts/ - Chart of Accounts (list, create, setup-defaults, tree)
- /vouchers/ - Voucher posting, retrieval and voiding
- /reports/ - Ledger, trial balance, balance sheet, profit & loss
- /fiscal-years/ - Fiscal years (create, close, reopen)
"""

from django.urls import path

from .views import (
    # Account views
    AccountListCreateView,
    AccountDetailView,
    AccountTreeView,
    SetupDefaultAccountsView,
    # Voucher views
    VoucherListCreateView,
    VoucherDetailView,
    VoucherVoidView,
    # Report views
    LedgerReportView,
    TrialBalanceView,
    BalanceSheetView,
    ProfitAndLossView,
    # Fiscal year views
    FiscalYearListCreateView,
    FiscalYearCloseView,
)

app_name = "accounting"

urlpatterns = [
    # ==========================================================================
    # Accounts (Chart of Accounts)
    # ==========================================================================
    path("accounts/", AccountListCreateView.as_view(), name="account-list"),
    path("accounts/setup-defaults/", SetupDefaultAccountsView.as_view(), name="account-setup-defaults"),
    path("accounts/tree/", AccountTreeView.as_view(), name="account-tree"),
    path("accounts/<int:pk>/", AccountDetailView.as_view(), name="account-detail"),

    # ==========================================================================
    # Vouchers
    # ==========================================================================
    path("vouchers/", VoucherListCreateView.as_view(), name="voucher-list"),
    path("vouchers/<uuid:public_id>/", VoucherDetailView.as_view(), name="voucher-detail"),
    path("vouchers/<uuid:public_id>/void/", VoucherVoidView.as_view(), name="voucher-void"),

    # ==========================================================================
    # Reports
    # ==========================================================================
    path("reports/ledger/", LedgerReportView.as_view(), name="report-ledger"),
    path("reports/trial-balance/", TrialBalanceView.as_view(), name="report-trial-balance"),
    path("reports/balance-sheet/", BalanceSheetView.as_view(), name="report-balance-sheet"),
    path("reports/profit-loss/", ProfitAndLossView.as_view(), name="report-profit-loss"),

    # ==========================================================================
    # Fiscal Years
    # ==========================================================================
    path("fiscal-years/", FiscalYearListCreateView.as_view(), name="fiscal-year-list"),
    path("fiscal-years/<int:pk>/close/", FiscalYearCloseView.as_view(closing=True), name="fiscal-year-close"),
    path("fiscal-years/<int:pk>/reopen/", FiscalYearCloseView.as_view(closing=False), name="fiscal-year-reopen"),
]
