"""
Payments Infrastructure Module

Polar webhook verification and product-to-plan mapping.
"""

from aisaas.infrastructure.payments.polar_service import PolarService, get_polar_service

__all__ = ["PolarService", "get_polar_service"]
