"""
Shared serializer building blocks.

Request bodies go through :class:`StrictSerializer`, which reports unknown
keys as field errors alongside the ordinary per-field violations instead
of silently dropping them.  Rules spanning several fields belong in
:meth:`StrictSerializer.cross_field_checks` so they are reported together
with everything else rather than only once every field is valid.
"""
from collections.abc import Mapping

import bleach
from rest_framework import serializers

from hms.config import parse_hhmm

PHONE_REGEX = r'^\+?[0-9][0-9\- ]{6,19}$'


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class StrictSerializer(serializers.Serializer):
    # field name -> message, for keys that are known but may never be written
    rejected_fields: dict[str, str] = {}

    def cross_field_checks(self, data: Mapping) -> dict[str, list[str]]:
        """Return ``{field: [messages]}`` for rules involving several raw values."""
        return {}

    def to_internal_value(self, data):
        errors = {}
        if isinstance(data, Mapping):
            for key in data:
                if key in self.rejected_fields:
                    errors[key] = [self.rejected_fields[key]]
                elif key not in self.fields or self.fields[key].read_only:
                    errors[key] = ['Unknown field.']
        try:
            value = super().to_internal_value(data)
        except serializers.ValidationError as exc:
            detail = exc.detail if isinstance(exc.detail, dict) else {'non_field_errors': exc.detail}
            errors = {**detail, **errors}
            value = None
        if isinstance(data, Mapping):
            for key, messages in self.cross_field_checks(data).items():
                errors[key] = list(errors.get(key, [])) + list(messages)
        if errors:
            raise serializers.ValidationError(errors)
        return value


class CleanCharField(serializers.CharField):
    """CharField whose value is stripped of any HTML markup."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        return bleach.clean(value, tags=[], strip=True)


class PhoneField(serializers.RegexField):
    default_error_messages = {'invalid': 'Enter a valid phone number.'}

    def __init__(self, **kwargs):
        super().__init__(PHONE_REGEX, max_length=20, **kwargs)


class HHMMField(serializers.Field):
    """Time of day written as ``HH:MM``."""
    default_error_messages = {'invalid': 'Enter a time in HH:MM format.'}

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail('invalid')
        try:
            return parse_hhmm(data)
        except ValueError:
            self.fail('invalid')

    def to_representation(self, value):
        return value.strftime('%H:%M')


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)
