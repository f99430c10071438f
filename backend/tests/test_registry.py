# tests/test_registry.py
"""
Tests for the account registry: codes, hierarchy, defaults, lifecycle.
"""

from datetime import date

import pytest

from accounting.exceptions import (
    AccountInUse,
    AlreadyInitialized,
    CycleDetected,
    DuplicateCode,
    InvalidLine,
    InvalidParent,
    NotFound,
    SystemAccount,
    ValidationError,
)
from accounting.models import Account
from accounting.registry import (
    DEFAULT_CHART,
    _save,
    create_account,
    deactivate_account,
    delete_account,
    get_account,
    list_accounts,
    reactivate_account,
    resolve_hierarchy,
    setup_defaults,
    update_account,
)
from accounting.write_barrier import registry_writes_allowed


T = Account.AccountType


# =============================================================================
# Creation
# =============================================================================

@pytest.mark.django_db
class TestCreateAccount:

    def test_create_sets_normal_balance_from_type(self, tenant):
        cash = create_account(tenant, "1000", "Cash", T.ASSET)
        income = create_account(tenant, "4000", "Tuition", T.INCOME)

        assert cash.normal_balance == Account.NormalBalance.DEBIT
        assert income.normal_balance == Account.NormalBalance.CREDIT
        assert cash.status == Account.Status.ACTIVE
        assert cash.is_system is False

    def test_duplicate_code_rejected(self, tenant, cash_account):
        with pytest.raises(DuplicateCode):
            create_account(tenant, "1000", "Petty Cash", T.ASSET)

        assert Account.objects.filter(tenant=tenant, code="1000").count() == 1

    def test_same_code_allowed_in_other_tenant(self, tenant, second_tenant, cash_account):
        other = create_account(second_tenant, "1000", "Cash", T.ASSET)
        assert other.tenant_id == second_tenant.id

    def test_unknown_type_rejected(self, tenant):
        with pytest.raises(ValidationError):
            create_account(tenant, "9000", "Memo", "MEMO")

    @pytest.mark.parametrize("code,name,field", [
        ("1" * 21, "Cash", "code"),
        ("1000", "n" * 256, "name"),
    ])
    def test_overlong_code_or_name_rejected(self, tenant, code, name, field):
        with pytest.raises(ValidationError) as exc:
            create_account(tenant, code, name, T.ASSET)

        assert exc.value.details["field"] == field
        assert not Account.objects.filter(tenant=tenant).exists()

    def test_missing_parent_rejected(self, tenant):
        with pytest.raises(InvalidParent):
            create_account(tenant, "1001", "Cash in Hand", T.ASSET, parent_id=999999)

    def test_parent_from_other_tenant_rejected(self, tenant, second_tenant):
        foreign = create_account(second_tenant, "1000", "Assets", T.ASSET)
        with pytest.raises(InvalidParent):
            create_account(tenant, "1001", "Cash", T.ASSET, parent_id=foreign.id)

    def test_parent_from_other_statement_family_rejected(self, tenant, tuition_account):
        with pytest.raises(InvalidParent):
            create_account(tenant, "1001", "Cash", T.ASSET, parent_id=tuition_account.id)

    def test_parent_in_same_family_allowed(self, tenant, capital_account):
        reserve = create_account(
            tenant, "3100", "Building Fund", T.LIABILITY, parent_id=capital_account.id,
        )
        assert reserve.parent_id == capital_account.id


# =============================================================================
# Defaults
# =============================================================================

@pytest.mark.django_db
class TestSetupDefaults:

    def test_seeds_system_tree(self, tenant):
        accounts = setup_defaults(tenant)

        assert len(accounts) == len(DEFAULT_CHART)
        assert all(a.is_system for a in accounts)

        cash = Account.objects.get(tenant=tenant, code="1001")
        assert cash.name == "Cash in Hand"
        assert cash.parent.code == "1000"

    def test_second_call_fails_and_changes_nothing(self, tenant):
        setup_defaults(tenant)
        before = Account.objects.filter(tenant=tenant).count()

        with pytest.raises(AlreadyInitialized):
            setup_defaults(tenant)

        assert Account.objects.filter(tenant=tenant).count() == before

    def test_refused_when_any_account_exists(self, tenant, cash_account):
        with pytest.raises(AlreadyInitialized):
            setup_defaults(tenant)
        assert Account.objects.filter(tenant=tenant).count() == 1


# =============================================================================
# Listing & Hierarchy
# =============================================================================

@pytest.mark.django_db
class TestListAndHierarchy:

    def test_list_orders_by_code_and_filters_type(self, tenant):
        create_account(tenant, "5000", "Salary", T.EXPENSE)
        create_account(tenant, "1000", "Cash", T.ASSET)
        create_account(tenant, "1100", "Bank", T.ASSET)

        assert [a.code for a in list_accounts(tenant)] == ["1000", "1100", "5000"]
        assert [a.code for a in list_accounts(tenant, account_type=T.ASSET)] == ["1000", "1100"]

    def test_list_can_hide_inactive(self, tenant, cash_account, bank_account):
        deactivate_account(tenant, bank_account.id)

        assert len(list_accounts(tenant)) == 2
        assert [a.code for a in list_accounts(tenant, include_inactive=False)] == ["1000"]

    def test_list_is_tenant_scoped(self, tenant, second_tenant, cash_account):
        create_account(second_tenant, "9999", "Other", T.ASSET)
        assert [a.code for a in list_accounts(tenant)] == ["1000"]

    def test_resolve_hierarchy_builds_tree(self, tenant):
        setup_defaults(tenant)
        tree = resolve_hierarchy(tenant)

        assert [n.account.code for n in tree.roots] == ["1000", "2000", "3000", "4000", "5000"]
        assets = tree.roots[0]
        assert [c.account.code for c in assets.children] == ["1001", "1002", "1003", "1004"]
        assert [a.code for a in tree.descendants(assets.account.id)] == ["1001", "1002", "1003", "1004"]
        assert tree.depth(assets.children[0].account.id) == 1

    def test_post_order_visits_children_first(self, tenant):
        root = create_account(tenant, "1000", "Assets", T.ASSET)
        mid = create_account(tenant, "1100", "Current", T.ASSET, parent_id=root.id)
        leaf = create_account(tenant, "1110", "Cash", T.ASSET, parent_id=mid.id)

        order = [n.account.id for n in resolve_hierarchy(tenant).post_order()]
        assert order.index(leaf.id) < order.index(mid.id) < order.index(root.id)

    def test_corrupted_cycle_detected(self, tenant):
        a = create_account(tenant, "1000", "A", T.ASSET)
        b = create_account(tenant, "1100", "B", T.ASSET, parent_id=a.id)

        # Write the cycle straight to the table, bypassing the registry checks.
        with registry_writes_allowed():
            Account.objects.filter(pk=a.id).update(parent_id=b.id)

        with pytest.raises(CycleDetected):
            resolve_hierarchy(tenant)


# =============================================================================
# Updates & Lifecycle
# =============================================================================

@pytest.mark.django_db
class TestAccountLifecycle:

    def test_get_account_scoped_to_tenant(self, tenant, second_tenant, cash_account):
        assert get_account(tenant, cash_account.id) == cash_account
        with pytest.raises(NotFound):
            get_account(second_tenant, cash_account.id)

    def test_update_name_and_code(self, tenant, cash_account):
        updated = update_account(tenant, cash_account.id, name="Cash in Hand", code="1001")
        cash_account.refresh_from_db()

        assert updated.code == "1001"
        assert cash_account.name == "Cash in Hand"

    def test_update_to_duplicate_code_rejected(self, tenant, cash_account, bank_account):
        with pytest.raises(DuplicateCode):
            update_account(tenant, bank_account.id, code="1000")

    def test_update_rejects_overlong_code_and_name(self, tenant, cash_account):
        with pytest.raises(ValidationError):
            update_account(tenant, cash_account.id, code="1" * 21)
        with pytest.raises(ValidationError):
            update_account(tenant, cash_account.id, name="n" * 256)

        cash_account.refresh_from_db()
        assert (cash_account.code, cash_account.name) == ("1000", "Cash")

    def test_model_validation_failure_raises_ledger_error(self, tenant):
        account = Account(tenant=tenant, code="1000", name="Cash", account_type=T.ASSET, status="ARCHIVED")

        with pytest.raises(ValidationError) as exc:
            _save(account)

        assert "status" in exc.value.details
        assert not Account.objects.filter(tenant=tenant).exists()

    def test_reparent_under_descendant_rejected(self, tenant):
        root = create_account(tenant, "1000", "Assets", T.ASSET)
        child = create_account(tenant, "1100", "Current", T.ASSET, parent_id=root.id)

        with pytest.raises(InvalidParent):
            update_account(tenant, root.id, parent_id=child.id)
        with pytest.raises(InvalidParent):
            update_account(tenant, root.id, parent_id=root.id)

    def test_type_change_updates_normal_balance(self, tenant, cash_account):
        update_account(tenant, cash_account.id, account_type=T.LIABILITY)
        cash_account.refresh_from_db()
        assert cash_account.normal_balance == Account.NormalBalance.CREDIT

    def test_type_change_blocked_once_posted(self, tenant, cash_account, tuition_received):
        with pytest.raises(AccountInUse):
            update_account(tenant, cash_account.id, account_type=T.EXPENSE)

        cash_account.refresh_from_db()
        assert cash_account.account_type == T.ASSET

    def test_unsupported_field_rejected(self, tenant, cash_account):
        with pytest.raises(ValidationError):
            update_account(tenant, cash_account.id, is_system=True)

    def test_deactivated_account_rejects_postings(self, tenant, post, cash_account, tuition_account):
        deactivate_account(tenant, cash_account.id)

        with pytest.raises(InvalidLine):
            post("JV", date(2024, 1, 5), (cash_account, 100, 0), (tuition_account, 0, 100))

        reactivate_account(tenant, cash_account.id)
        post("JV", date(2024, 1, 5), (cash_account, 100, 0), (tuition_account, 0, 100))

    def test_delete_unused_account(self, tenant, cash_account):
        delete_account(tenant, cash_account.id)
        assert not Account.objects.filter(pk=cash_account.id).exists()

    def test_delete_account_with_postings_rejected(self, tenant, cash_account, tuition_received):
        with pytest.raises(AccountInUse):
            delete_account(tenant, cash_account.id)

    def test_delete_account_with_children_rejected(self, tenant):
        root = create_account(tenant, "1000", "Assets", T.ASSET)
        create_account(tenant, "1100", "Cash", T.ASSET, parent_id=root.id)
        with pytest.raises(AccountInUse):
            delete_account(tenant, root.id)

    def test_delete_system_account_rejected(self, tenant):
        setup_defaults(tenant)
        cash = Account.objects.get(tenant=tenant, code="1001")
        with pytest.raises(SystemAccount):
            delete_account(tenant, cash.id)
