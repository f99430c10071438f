# accounting/__init__.py
"""
Accounting app - School ledger core.

This app provides:
- Account: Chart of Accounts with hierarchy
- Voucher: Balanced journal entries (CPV/CRV/BPV/BRV/JV)
- VoucherLine: Debit/credit lines
- VoucherSequence: Gapless per-type voucher numbering
- FiscalYear: Tenant fiscal years

Service modules (registry, vouchers, ledger, reports, periods) handle all
mutations and reads; views only validate and delegate.
"""
