"""Outbound email for Noor.

Modules:
- core: ``send_email`` over the configured SMTP relay
"""
