"""
Integrations Router - connection status per client.

Endpoints:
==========
- GET /integrations/status?clientId=&required=ga4,gsc → connected and missing providers
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from practice_connect.deps import Services, get_services, require_client_id
from practice_connect.environments.registry import CANONICAL_ORDER, parse_provider_list


router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.get("/status")
def integration_status(
    client_id: Optional[str] = Query(None, alias="clientId"),
    required: Optional[str] = Query(None, description="Comma-separated providers; default all"),
    services: Services = Depends(get_services),
):
    """
    Which providers does a client have connected, and which required ones are missing?

    Example response:
    {"clientId": "c-1", "connected": ["gsc"], "missing": ["ga4", "gbp"]}
    """
    client_id = require_client_id(client_id)
    wanted = parse_provider_list(required)

    connected = services.store.list_connected_providers(client_id)
    missing = services.detector.missing_providers(client_id, wanted)

    return {
        "clientId": client_id,
        "connected": [p.value for p in CANONICAL_ORDER if p in connected],
        "missing": [p.value for p in missing],
    }
