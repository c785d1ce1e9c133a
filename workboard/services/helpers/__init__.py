"""Shared query and transaction helpers for the service layer."""
