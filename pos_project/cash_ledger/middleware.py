from django.utils.deprecation import MiddlewareMixin

from .actor import Actor


class CurrentActorMiddleware(MiddlewareMixin):
    # Runs on every request and attaches request.actor, the explicit
    # identity the ledger commands expect
    def process_request(self, request):
        user = getattr(request, "user", None)
        # Unauthenticated users get None; the command views answer 403
        request.actor = Actor.from_user(user)
