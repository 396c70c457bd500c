"""Core application for the practice backend.

This package contains models, serializers, services, views and route
registrations for appointments, health records, billing, telehealth,
users and analytics.
"""
