"""
Email Infrastructure Module

Transactional email delivery.
"""

from aisaas.infrastructure.email.email_service import EmailService, get_email_service

__all__ = ["EmailService", "get_email_service"]
