"""Shared external API clients."""

from storefront_mcp.clients.sheets import GoogleTokenProvider, SheetsClient

__all__ = [
    "GoogleTokenProvider",
    "SheetsClient",
]
