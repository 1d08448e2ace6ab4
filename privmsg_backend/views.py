from django.http import JsonResponse


def index(request):
    """Liveness probe."""
    return JsonResponse({"status": "ok", "service": "privmsg"})
