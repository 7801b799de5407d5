"""
Domain Services Package

Architectural Intent:
- Stateful domain services that own relay state
"""

from fanout.domain.services.subscription_registry import SubscriptionRegistry

__all__ = ["SubscriptionRegistry"]
