"""
Disconnection Detector - which required providers is a client missing?
"""

from typing import Iterable, List, Union

from practice_connect.environments.registry import CANONICAL_ORDER, Provider, get_provider
from practice_connect.services.credential_store import CredentialStore


class DisconnectionDetector:
    def __init__(self, store: CredentialStore):
        self._store = store

    def missing_providers(
        self,
        client_id: str,
        required: Iterable[Union[str, Provider]],
    ) -> List[Provider]:
        """
        Required providers without a stored access token.

        Result is de-duplicated and in registry order, regardless of the
        order of ``required``.

        Raises:
            UnsupportedProvider: If ``required`` names an unknown provider
        """
        wanted = {get_provider(p) for p in required}
        connected = self._store.list_connected_providers(client_id)
        return [p for p in CANONICAL_ORDER if p in wanted and p not in connected]
