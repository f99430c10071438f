"""
Health endpoints, mounted at /_health/.

Keep them outside gateway authentication and reachable from the
internal network only.
"""
from django.urls import path

from ops.health import FullHealthView, LivenessView, ReadinessView

urlpatterns = [
    path("live", LivenessView.as_view(), name="health-live"),
    path("ready", ReadinessView.as_view(), name="health-ready"),
    path("full", FullHealthView.as_view(), name="health-full"),
]
