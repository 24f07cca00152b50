"""Authentication for Kuberoot: API key hashing and the tenant gateway."""

from kuberoot.auth.gateway import APIKeyGateway, LocalGateway, TenantGateway, select_gateway
from kuberoot.auth.keys import API_KEY_HEADER, generate_api_key, hash_api_key

__all__ = [
    "API_KEY_HEADER",
    "APIKeyGateway",
    "LocalGateway",
    "TenantGateway",
    "generate_api_key",
    "hash_api_key",
    "select_gateway",
]
