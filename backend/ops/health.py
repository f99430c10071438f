"""
Health endpoints for the ledger service.

- /_health/live   process is up (no I/O)
- /_health/ready  database answers, so postings can be accepted
- /_health/full   database plus a trial balance per active tenant

/full runs every tenant's trial balance and is meant for internal
dashboards, not for high-frequency probes.
"""
import logging
import time
from typing import Any, Dict, List

from django.conf import settings
from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.views import View

from accounting.exceptions import LedgerIntegrityError
from accounting.reports import trial_balance
from tenant.models import Tenant

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


class HealthCheck:
    """Individual checks; each returns a dict with a "status" key."""

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        start = time.monotonic()
        try:
            with connections[alias].cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except DatabaseError as e:
            logger.error("Database health check failed", extra={"alias": alias, "error": str(e)})
            return {"status": "unhealthy", "alias": alias, "error": str(e), "duration_ms": _elapsed_ms(start)}
        return {"status": "healthy", "alias": alias, "duration_ms": _elapsed_ms(start)}

    @staticmethod
    def check_ledger_integrity() -> Dict[str, Any]:
        """Trial balance columns must agree for every active tenant."""
        start = time.monotonic()
        failures: List[Dict[str, Any]] = []
        tenants = list(Tenant.objects.filter(is_active=True))

        for tenant in tenants:
            try:
                trial_balance(tenant)
            except LedgerIntegrityError as e:
                failures.append({"tenant": tenant.slug, **e.to_dict()})

        if failures:
            logger.critical(
                "Ledger integrity check failed",
                extra={"failed_tenants": [f["tenant"] for f in failures]},
            )
        return {
            "status": "unhealthy" if failures else "healthy",
            "tenants_checked": len(tenants),
            "failures": failures[:10],
            "duration_ms": _elapsed_ms(start),
        }

    @classmethod
    def full_report(cls) -> Dict[str, Any]:
        checks = {"database": cls.check_database()}
        if checks["database"]["status"] == "healthy":
            checks["ledger_integrity"] = cls.check_ledger_integrity()

        healthy = all(check["status"] == "healthy" for check in checks.values())
        return {
            "status": "healthy" if healthy else "unhealthy",
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
        }


class LivenessView(View):
    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    def get(self, request):
        database = HealthCheck.check_database()
        ready = database["status"] == "healthy"
        return JsonResponse(
            {"status": "ready" if ready else "not_ready", "database": database},
            status=200 if ready else 503,
        )


class FullHealthView(View):
    def get(self, request):
        report = HealthCheck.full_report()
        return JsonResponse(report, status=200 if report["status"] == "healthy" else 503)
