# accounting/serializers.py
"""
Serializers for the accounting API.

These serializers are used for:
1. Input validation: loose JSON becomes typed values (dates, ints,
   VoucherLineInput) before anything reaches the service modules
2. Output formatting: integer minor units become decimal strings using
   the tenant's decimal_places

The actual business rules live in registry.py, vouchers.py, ledger.py,
reports.py and periods.py.
"""

from rest_framework import serializers

from accounting.exceptions import InvalidLine
from accounting.models import Account, FiscalYear, Voucher, VoucherLine
from accounting.money import decimal_places_for, from_minor_units, to_minor_units
from accounting.vouchers import VoucherLineInput


class MoneyField(serializers.Field):
    """
    Decimal amount at the boundary, integer minor units inside.

    Reads the tenant from serializer context to know the precision.
    """

    def _places(self) -> int:
        return decimal_places_for(self.context.get("tenant"))

    def to_internal_value(self, data):
        try:
            value = to_minor_units(data, self._places())
        except InvalidLine as exc:
            raise serializers.ValidationError(str(exc))
        if value < 0:
            raise serializers.ValidationError("Negative amounts are not allowed.")
        return value

    def to_representation(self, value):
        return str(from_minor_units(value, self._places()))


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    """Serializer for Account model (listing and retrieval)."""
    has_transactions = serializers.SerializerMethodField()
    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)

    class Meta:
        model = Account
        fields = [
            "id", "public_id", "code", "name",
            "account_type", "status", "normal_balance",
            "parent", "parent_code", "is_system", "description",
            "has_transactions",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_has_transactions(self, obj):
        # Use annotated value if available (from list view), else query
        if hasattr(obj, "_has_transactions"):
            return obj._has_transactions
        return obj.voucher_lines.exists()


class AccountCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=255)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices)
    parent_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class AccountUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    code = serializers.CharField(max_length=20, required=False)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices, required=False)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Account.Status.choices, required=False)


# =============================================================================
# Voucher Serializers
# =============================================================================

class VoucherLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)
    debit = MoneyField(read_only=True)
    credit = MoneyField(read_only=True)

    class Meta:
        model = VoucherLine
        fields = [
            "line_no", "account", "account_code", "account_name",
            "description", "debit", "credit",
        ]
        read_only_fields = fields


class VoucherSerializer(serializers.ModelSerializer):
    """Voucher header with nested lines."""
    lines = VoucherLineSerializer(many=True, read_only=True)
    reverses = serializers.UUIDField(source="reverses.public_id", read_only=True, default=None)
    fiscal_year = serializers.CharField(source="fiscal_year.name", read_only=True, default=None)

    class Meta:
        model = Voucher
        fields = [
            "id", "public_id", "voucher_no", "voucher_type", "date",
            "description", "reference", "status",
            "source_module", "source_id", "fiscal_year", "reverses",
            "void_reason", "voided_at", "voided_by",
            "created_at", "created_by",
            "lines",
        ]
        read_only_fields = fields


class VoucherListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Voucher
        fields = [
            "id", "public_id", "voucher_no", "voucher_type", "date",
            "description", "reference", "status", "created_at",
        ]
        read_only_fields = fields


class VoucherLineInputSerializer(serializers.Serializer):
    """
    One requested line.

    Standardized contract: ALWAYS use account_id (integer).
    """
    account_id = serializers.IntegerField()
    debit = MoneyField(required=False, default=0)
    credit = MoneyField(required=False, default=0)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class VoucherCreateSerializer(serializers.Serializer):
    voucher_type = serializers.ChoiceField(choices=Voucher.VoucherType.choices)
    date = serializers.DateField()
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    source_module = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    source_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    lines = VoucherLineInputSerializer(many=True)

    def validate_lines(self, value):
        return [
            VoucherLineInput(
                account_id=line["account_id"],
                debit=line["debit"],
                credit=line["credit"],
                description=line["description"],
            )
            for line in value
        ]


class VoucherVoidSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)
    reversal_date = serializers.DateField(required=False, allow_null=True, default=None)


class VoucherFilterSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    type = serializers.ChoiceField(choices=Voucher.VoucherType.choices, required=False)
    status = serializers.ChoiceField(choices=Voucher.Status.choices, required=False)


# =============================================================================
# Report Serializers
# =============================================================================

class LedgerQuerySerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()


class DateRangeQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()


class AsOfQuerySerializer(serializers.Serializer):
    as_of_date = serializers.DateField(required=False)


class LedgerRowSerializer(serializers.Serializer):
    date = serializers.DateField()
    voucher_no = serializers.CharField()
    voucher_type = serializers.CharField()
    voucher_status = serializers.CharField()
    description = serializers.CharField()
    debit = MoneyField()
    credit = MoneyField()
    balance = MoneyField()


class LedgerReportSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    account_code = serializers.CharField()
    account_name = serializers.CharField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    opening_balance = MoneyField()
    transactions = LedgerRowSerializer(many=True)
    closing_balance = MoneyField()


class TrialBalanceRowSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    code = serializers.CharField()
    name = serializers.CharField()
    account_type = serializers.CharField()
    debit = MoneyField()
    credit = MoneyField()
    abnormal = serializers.BooleanField()


class TrialBalanceSerializer(serializers.Serializer):
    as_of_date = serializers.DateField(allow_null=True)
    rows = TrialBalanceRowSerializer(many=True)
    total_debit = MoneyField()
    total_credit = MoneyField()
    is_balanced = serializers.BooleanField()


class ReportLineSerializer(serializers.Serializer):
    account_id = serializers.IntegerField(allow_null=True)
    code = serializers.CharField(allow_blank=True)
    name = serializers.CharField()
    account_type = serializers.CharField()
    balance = MoneyField()
    depth = serializers.IntegerField()
    parent_id = serializers.IntegerField(allow_null=True)
    abnormal = serializers.BooleanField()
    synthetic = serializers.BooleanField()


class BalanceSheetSerializer(serializers.Serializer):
    as_of_date = serializers.DateField()
    assets = ReportLineSerializer(many=True)
    liabilities = ReportLineSerializer(many=True)
    equity = ReportLineSerializer(many=True)
    total_assets = MoneyField()
    total_liabilities = MoneyField()
    total_equity = MoneyField()
    net_income = MoneyField()
    is_balanced = serializers.BooleanField()
    warning = serializers.CharField(allow_null=True)


class ProfitAndLossSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    income = ReportLineSerializer(many=True)
    expense = ReportLineSerializer(many=True)
    total_income = MoneyField()
    total_expense = MoneyField()
    net_profit = MoneyField()


# =============================================================================
# Fiscal Year Serializers
# =============================================================================

class FiscalYearSerializer(serializers.ModelSerializer):
    class Meta:
        model = FiscalYear
        fields = ["id", "public_id", "name", "start_date", "end_date", "is_closed", "closed_at"]
        read_only_fields = fields


class FiscalYearCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
