"""Clinic management application.

Models, serializers, services and views for patients, appointments,
prescriptions, payments and staff.
"""
