"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - identity: registration, login, session tokens and user roles
    - booking_management: booking lifecycle and status transitions
"""
