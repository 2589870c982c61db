"""Shared building blocks used by every app: the error taxonomy and its DRF handler."""
