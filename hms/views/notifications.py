from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.exceptions import NotFound
from hms.models import Notification
from hms.pagination import paginate
from hms.permissions import IsStaffRole
from hms.serializers.notification import NotificationListQuerySerializer
from hms.services.notifications import format_notification


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def notifications(request):
    """The caller's own notifications, newest first."""
    q = NotificationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = Notification.objects.filter(recipient=request.user)
    if q.validated_data.get('unreadOnly'):
        qs = qs.filter(is_read=False)
    return Response(paginate(qs.order_by('-created_at', '-id'), q.validated_data, format_notification))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def unread_count(request):
    n = Notification.objects.filter(recipient=request.user, is_read=False).count()
    return Response({'ok': True, 'data': {'unread': n}})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def mark_read(request, notification_id: int):
    n = Notification.objects.filter(pk=notification_id, recipient=request.user).first()
    if n is None:
        raise NotFound('Notification not found.', resource='notification', id=notification_id)
    if not n.is_read:
        n.is_read = True
        n.save(update_fields=['is_read'])
    return Response({'ok': True, 'data': format_notification(n)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def mark_all_read(request):
    updated = Notification.objects.filter(recipient=request.user, is_read=False).update(is_read=True)
    return Response({'ok': True, 'data': {'updated': updated}})
