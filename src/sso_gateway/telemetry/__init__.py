"""Telemetry for sso-gateway.

- audit/: Authentication audit trail (auth.jsonl)
- system/: Operational logging (stderr + system.jsonl)
- models/: Pydantic models for structured log events
"""
