"""
Backend API client package.

Exports:
    PromoterAPIClient: HTTP client for schemas, options, templates
    substitute_platform: ``:platformId`` placeholder substitution
"""
from .client import PromoterAPIClient, substitute_platform, PLATFORM_PLACEHOLDER

__all__ = ["PromoterAPIClient", "substitute_platform", "PLATFORM_PLACEHOLDER"]
