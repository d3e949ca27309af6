"""Scoped throttles shared by the API apps.

Rates are looked up from Django settings at request time rather than at
class definition, so tests using override_settings reliably affect rates.
"""

from django.conf import settings
from rest_framework.throttling import ScopedRateThrottle


class SettingsScopedRateThrottle(ScopedRateThrottle):
    def get_rate(self):
        rf = getattr(settings, "REST_FRAMEWORK", {})
        rates = rf.get("DEFAULT_THROTTLE_RATES", {})
        return rates.get(self.scope)

    def get_ident(self, request):
        # Authenticated callers are throttled per user; warehouse terminals often share an IP.
        user = getattr(request, "user", None)
        if user is not None and getattr(user, "is_authenticated", False):
            return f"user:{user.pk}"
        return super().get_ident(request)
