"""Rate limits for the public login and take-a-number endpoints."""
from rest_framework.throttling import AnonRateThrottle, SimpleRateThrottle


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


class QueueTakeRateThrottle(SimpleRateThrottle):
    """Kiosks are anonymous, so the client address is the throttle key."""
    scope = 'queue_take'

    def get_cache_key(self, request, view):
        return self.cache_format % {'scope': self.scope, 'ident': self.get_ident(request)}
