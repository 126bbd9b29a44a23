"""
Organizations: tenancy root for catalogs, API keys and SMS webhooks.
"""

from feedback_engine.organizations.models import Organization
from feedback_engine.organizations.repository import OrganizationRepository

__all__ = ["Organization", "OrganizationRepository"]
