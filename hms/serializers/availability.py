from rest_framework import serializers

from hms.config import parse_hhmm
from hms.serializers.base import StrictSerializer, CleanCharField, HHMMField


class AvailabilityWindowSerializer(StrictSerializer):
    dayOfWeek = serializers.IntegerField(min_value=0, max_value=6)
    startTime = HHMMField()
    endTime = HHMMField()
    isAvailable = serializers.BooleanField(default=True)

    def cross_field_checks(self, data):
        try:
            same = parse_hhmm(data['startTime']) == parse_hhmm(data['endTime'])
        except (KeyError, AttributeError, TypeError, ValueError):
            # missing or malformed times are reported by the fields themselves
            return {}
        return {'endTime': ['End time must differ from start time.']} if same else {}


class AvailabilityReplaceSerializer(StrictSerializer):
    windows = AvailabilityWindowSerializer(many=True, allow_empty=True)

    def validate_windows(self, windows):
        seen = set()
        for w in windows:
            key = (w['dayOfWeek'], w['startTime'])
            if key in seen:
                raise serializers.ValidationError('Duplicate window for the same day and start time.')
            seen.add(key)
        return windows


class LeaveCreateSerializer(StrictSerializer):
    date = serializers.DateField()
    reason = CleanCharField(required=False, allow_blank=True, max_length=255)
