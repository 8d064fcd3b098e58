"""
Provider Registry - the single table of supported Google data providers.

Every provider-specific constant (OAuth scopes, callback path, API base URL,
display name) lives here. Adding a provider means adding one ``Provider``
member and one ``ProviderSpec`` row; nothing else in the codebase branches
on provider name strings.

Scopes Reference:
=================
https://developers.google.com/identity/protocols/oauth2/scopes
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from practice_connect.environments.base import UnsupportedProvider


class Provider(str, Enum):
    """Closed enumeration of supported providers. Declaration order is canonical."""
    GA4 = "ga4"
    GSC = "gsc"
    GBP = "gbp"


@dataclass(frozen=True)
class ProviderSpec:
    """Immutable per-provider configuration."""
    provider: Provider
    display_name: str
    scopes: Tuple[str, ...]
    api_base_url: str
    # listing_resource: Name of the collection the provider exposes (sites, properties, ...)
    listing_resource: str
    callback_path_template: str = "/callback/{provider}"

    @property
    def callback_path(self) -> str:
        return self.callback_path_template.format(provider=self.provider.value)


_REGISTRY: Dict[Provider, ProviderSpec] = {
    Provider.GA4: ProviderSpec(
        provider=Provider.GA4,
        display_name="Google Analytics 4",
        scopes=(
            "https://www.googleapis.com/auth/analytics.readonly",
            "https://www.googleapis.com/auth/analytics.manage.users.readonly",
        ),
        api_base_url="https://analyticsdata.googleapis.com/v1beta",
        listing_resource="properties",
    ),
    Provider.GSC: ProviderSpec(
        provider=Provider.GSC,
        display_name="Google Search Console",
        scopes=("https://www.googleapis.com/auth/webmasters.readonly",),
        api_base_url="https://www.googleapis.com/webmasters/v3",
        listing_resource="sites",
    ),
    Provider.GBP: ProviderSpec(
        provider=Provider.GBP,
        display_name="Google Business Profile",
        scopes=("https://www.googleapis.com/auth/business.manage",),
        api_base_url="https://mybusinessbusinessinformation.googleapis.com/v1",
        listing_resource="locations",
    ),
}

CANONICAL_ORDER: Tuple[Provider, ...] = tuple(Provider)


def is_supported(provider: Union[str, Provider, None]) -> bool:
    """Return True if the identifier names a registered provider."""
    if isinstance(provider, Provider):
        return provider in _REGISTRY
    try:
        return Provider(provider) in _REGISTRY
    except ValueError:
        return False


def get_provider(provider: Union[str, Provider, None]) -> Provider:
    """
    Parse a provider identifier.

    Args:
        provider: Identifier string such as "gsc" (or a Provider)

    Returns:
        The matching Provider member

    Raises:
        UnsupportedProvider: For anything outside the enumeration
    """
    if not is_supported(provider):
        raise UnsupportedProvider(provider.value if isinstance(provider, Provider) else provider)
    return Provider(provider)


def get_spec(provider: Union[str, Provider, None]) -> ProviderSpec:
    return _REGISTRY[get_provider(provider)]


def scopes_for(provider: Union[str, Provider, None]) -> Tuple[str, ...]:
    """OAuth scopes requested for a provider, in a stable order."""
    return get_spec(provider).scopes


def callback_path_for(provider: Union[str, Provider, None]) -> str:
    """Callback path (relative to the redirect origin) for a provider."""
    return get_spec(provider).callback_path


def display_name_for(provider: Union[str, Provider, None]) -> str:
    return get_spec(provider).display_name


def api_base_url_for(provider: Union[str, Provider, None]) -> str:
    return get_spec(provider).api_base_url


def listing_resource_for(provider: Union[str, Provider, None]) -> str:
    """Name of the provider's listing resource ("properties", "sites", "locations")."""
    return get_spec(provider).listing_resource


def parse_provider_list(value: Optional[str]) -> Tuple[Provider, ...]:
    """
    Parse a comma-separated provider list ("ga4,gbp").

    An empty or missing value means every provider.

    Raises:
        UnsupportedProvider: If any entry is not registered
    """
    if not value:
        return CANONICAL_ORDER
    return tuple(get_provider(item.strip()) for item in value.split(",") if item.strip())
