import logging

from django.db.models import Count, Q
from django.http import HttpResponse, HttpResponseBadRequest, HttpResponseRedirect
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_GET
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from .models import EmailEvent
from .tracking import TRANSPARENT_GIF, is_safe_redirect

logger = logging.getLogger(__name__)


@never_cache
@require_GET
def open_pixel(request):
    campaign_id = request.GET.get('c')
    recipient = request.GET.get('r')
    if not campaign_id or not recipient:
        return HttpResponseBadRequest("Missing parameters")

    EmailEvent.objects.create(campaign_id=campaign_id, recipient=recipient, type=EmailEvent.OPEN)
    response = HttpResponse(TRANSPARENT_GIF, content_type='image/gif')
    response['Pragma'] = 'no-cache'
    return response


@require_GET
def click_redirect(request):
    campaign_id = request.GET.get('c')
    recipient = request.GET.get('r')
    url = request.GET.get('u')
    if not campaign_id or not recipient or not url:
        return HttpResponseBadRequest("Missing parameters")
    if not is_safe_redirect(url):
        logger.warning(f"Refusing click redirect to {url}")
        return HttpResponseBadRequest("Invalid url")

    EmailEvent.objects.create(campaign_id=campaign_id, recipient=recipient, type=EmailEvent.CLICK, url=url)
    return HttpResponseRedirect(url)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def campaign_stats(request):
    campaign_id = request.query_params.get('c')
    if not campaign_id:
        return Response({"detail": "Missing parameters"}, status=400)

    events = EmailEvent.objects.filter(campaign_id=campaign_id)
    counts = events.aggregate(
        opens=Count('id', filter=Q(type=EmailEvent.OPEN)),
        clicks=Count('id', filter=Q(type=EmailEvent.CLICK)),
        unique_opens=Count('recipient', filter=Q(type=EmailEvent.OPEN), distinct=True),
        unique_clicks=Count('recipient', filter=Q(type=EmailEvent.CLICK), distinct=True),
    )
    return Response({"campaign": campaign_id, **counts})
