"""
Google Business Profile Module - locations and engagement metrics.
"""

from practice_connect.environments.google.business_profile.client import BusinessProfileClient

__all__ = ["BusinessProfileClient"]
