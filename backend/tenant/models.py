"""
Tenant records.

A tenant is one school. Provisioning happens outside the ledger; this
table only gives ledger rows an owner and carries the currency settings
the ledger needs to interpret amounts.
"""
import uuid

from django.db import models


class Tenant(models.Model):
    """
    One school (tenant) whose books the ledger keeps.

    Amounts for a tenant are stored in integer minor units; decimal_places
    says how many minor units make one major unit (2 -> paisa/cents).
    """

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        help_text="Public identifier for API exposure.",
    )

    slug = models.SlugField(max_length=64, unique=True)
    name = models.CharField(max_length=255)

    currency = models.CharField(max_length=3, default="PKR")
    decimal_places = models.PositiveSmallIntegerField(
        default=2,
        help_text="Minor-unit precision of the tenant currency.",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["slug"]

    def __str__(self):
        return self.slug
