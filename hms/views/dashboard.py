"""
Administrative dashboard endpoint.

Only administrative roles may read clinic-wide figures.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.config import get_clinic_config
from hms.permissions import IsAdminRole
from hms.services.dashboard import clinic_stats


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_stats(request):
    return Response({'ok': True, 'data': clinic_stats(get_clinic_config())})
