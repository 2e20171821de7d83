"""Persistence contracts used by the service layer."""
