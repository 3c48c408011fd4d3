from rest_framework import serializers

from hms.serializers.base import PageQuerySerializer


class NotificationListQuerySerializer(PageQuerySerializer):
    unreadOnly = serializers.BooleanField(required=False, default=False)
