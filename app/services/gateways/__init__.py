# Remote team service clients
from app.services.gateways.base import BaseTeamClient, OWNER_ROLE, non_owner_members
from app.services.gateways.team_api import TeamApiClient

CLIENTS = {
    'team_api': TeamApiClient,
}

def get_team_client(name: str = 'team_api') -> BaseTeamClient:
    """Get team client instance by name"""
    client_class = CLIENTS.get(name.lower())
    if not client_class:
        raise ValueError(f"Unknown team client: {name}. Available: {list(CLIENTS.keys())}")
    return client_class()
