"""
Google Analytics 4 Module - GA4 properties and traffic metrics.
"""

from practice_connect.environments.google.analytics.client import GoogleAnalyticsClient

__all__ = ["GoogleAnalyticsClient"]
