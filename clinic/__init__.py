"""Clinic application for the Mediku hospital backend.

This package contains the models, services, serializers, views, route
registrations and realtime consumers behind the REST and WebSocket API.
"""
