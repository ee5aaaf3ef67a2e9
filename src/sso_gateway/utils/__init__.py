"""Shared utilities for sso-gateway."""
