import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenant", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("code", models.CharField(max_length=20)),
                ("name", models.CharField(max_length=255)),
                ("account_type", models.CharField(choices=[("ASSET", "Asset"), ("LIABILITY", "Liability"), ("EQUITY", "Equity"), ("INCOME", "Income"), ("EXPENSE", "Expense")], db_column="type", max_length=20)),
                ("normal_balance", models.CharField(choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")], editable=False, max_length=10)),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive")], default="ACTIVE", max_length=20)),
                ("is_system", models.BooleanField(default=False, help_text="Seeded default account; cannot be deleted.")),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="accounting.account")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="accounts", to="tenant.tenant")),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["tenant", "account_type"], name="acct_tenant_type_idx"),
                    models.Index(fields=["tenant", "parent"], name="acct_tenant_parent_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "code"), name="uniq_account_code_per_tenant"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FiscalYear",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(max_length=100)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("is_closed", models.BooleanField(default=False)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="fiscal_years", to="tenant.tenant")),
            ],
            options={
                "ordering": ["start_date"],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "name"), name="uniq_fiscal_year_name_per_tenant"),
                    models.CheckConstraint(condition=models.Q(("end_date__gte", models.F("start_date"))), name="chk_fiscal_year_range"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VoucherSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voucher_type", models.CharField(max_length=8)),
                ("next_value", models.BigIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="voucher_sequences", to="tenant.tenant")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "voucher_type"), name="uniq_voucher_sequence_per_type"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Voucher",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("voucher_no", models.CharField(max_length=32)),
                ("sequence_number", models.BigIntegerField()),
                ("voucher_type", models.CharField(choices=[("CPV", "Cash Payment Voucher"), ("CRV", "Cash Receipt Voucher"), ("BPV", "Bank Payment Voucher"), ("BRV", "Bank Receipt Voucher"), ("JV", "Journal Voucher")], db_column="type", max_length=8)),
                ("date", models.DateField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("reference", models.CharField(blank=True, default="", help_text="Cheque no, invoice no, receipt no", max_length=100)),
                ("status", models.CharField(choices=[("POSTED", "Posted"), ("VOIDED", "Voided")], default="POSTED", max_length=12)),
                ("source_module", models.CharField(blank=True, default="", max_length=50)),
                ("source_id", models.CharField(blank=True, default="", max_length=100)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("voided_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("fiscal_year", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="vouchers", to="accounting.fiscalyear")),
                ("reverses", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="reversal", to="accounting.voucher")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="vouchers", to="tenant.tenant")),
            ],
            options={
                "ordering": ["date", "voucher_type", "sequence_number"],
                "indexes": [
                    models.Index(fields=["tenant", "date", "voucher_type", "sequence_number"], name="voucher_tenant_date_idx"),
                    models.Index(fields=["tenant", "voucher_type", "date"], name="voucher_tenant_type_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "voucher_type", "sequence_number"), name="uniq_voucher_sequence_number"),
                    models.UniqueConstraint(fields=("tenant", "voucher_no"), name="uniq_voucher_no_per_tenant"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VoucherLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("debit", models.BigIntegerField(default=0)),
                ("credit", models.BigIntegerField(default=0)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="voucher_lines", to="accounting.account")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="voucher_lines", to="tenant.tenant")),
                ("voucher", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="lines", to="accounting.voucher")),
            ],
            options={
                "ordering": ["voucher", "line_no"],
                "indexes": [
                    models.Index(fields=["tenant", "account"], name="vline_tenant_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("voucher", "line_no"), name="uniq_voucher_line_no"),
                    models.CheckConstraint(condition=models.Q(("debit__gt", 0), ("credit__gt", 0), _negated=True), name="chk_line_not_both_debit_credit"),
                    models.CheckConstraint(condition=models.Q(("debit", 0), ("credit", 0), _negated=True), name="chk_line_not_both_zero"),
                    models.CheckConstraint(condition=models.Q(("debit__gte", 0), ("credit__gte", 0)), name="chk_line_non_negative"),
                ],
            },
        ),
    ]
