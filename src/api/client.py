"""
Event Promoter Backend API Client.

This module provides the HTTP client for every backend collaborator the
engine talks to: platform schemas, composite option sources, target
registration, the template apply service and the template catalog.

All failures surface as errors.NetworkError carrying the HTTP status and the
server-provided message when there is one. Callers convert that into an
inline message or a degraded value at their own boundary.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

import requests

from config import read_secret_file
from errors import NetworkError, SchemaValidationError
from fields.normalize import normalize_options
from schema import validate_platform_schema
from schema.models import FieldOption, PlatformSchema

logger = logging.getLogger(__name__)

PLATFORM_PLACEHOLDER = ":platformId"


def substitute_platform(endpoint: str, platform_id: Optional[str]) -> str:
    """Replace the ``:platformId`` placeholder of an endpoint template.

    Example:
        >>> substitute_platform("/platforms/:platformId/recipients", "email")
        '/platforms/email/recipients'
    """
    return endpoint.replace(PLATFORM_PLACEHOLDER, platform_id or "")


class PromoterAPIClient:
    """
    Client for the Event Promoter backend API.

    Attributes:
        base_url: Base URL of the API (e.g., http://localhost:4000/api)
        timeout: Request timeout in seconds
        max_workers: Concurrent fetches allowed when loading option sources
        session: Shared requests session
    """

    DEFAULT_TIMEOUT = 30
    DEFAULT_MAX_WORKERS = 8

    def __init__(
        self,
        base_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        token: Optional[str] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: Base URL of the backend API
            timeout: Request timeout in seconds
            token: Optional bearer token sent with every request
            max_workers: Worker pool size for concurrent option loading
            session: Optional preconfigured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_workers = max(1, int(max_workers))
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

        self._schema_cache: Dict[str, PlatformSchema] = {}
        self._schema_lock = threading.Lock()

        logger.info(f"PromoterAPIClient initialized for {self.base_url}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PromoterAPIClient":
        """
        Create a PromoterAPIClient from configuration dictionary.

        Args:
            config: Configuration dictionary with an ``api`` section

        Returns:
            Configured PromoterAPIClient instance

        Example:
            >>> client = PromoterAPIClient.from_config(load_config())
        """
        api_config = config.get("api", {}) or {}

        token = None
        token_file = api_config.get("token_file")
        if token_file:
            token = read_secret_file(token_file)

        return cls(
            base_url=api_config.get("url", "http://localhost:4000/api"),
            timeout=api_config.get("timeout", cls.DEFAULT_TIMEOUT),
            token=token,
            max_workers=api_config.get("max_workers", cls.DEFAULT_MAX_WORKERS),
        )

    def build_url(self, endpoint: str) -> str:
        """Build the full URL for an endpoint.

        Absolute URLs pass through. A leading ``/api`` is dropped because the
        base URL already ends in it.
        """
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        path = endpoint.lstrip("/")
        if path == "api" or path.startswith("api/"):
            path = path[3:].lstrip("/")
        return f"{self.base_url}/{path}"

    def _request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None,
                 payload: Optional[Dict[str, Any]] = None, platform_id: Optional[str] = None) -> Any:
        if platform_id is not None:
            endpoint = substitute_platform(endpoint, platform_id)
        url = self.build_url(endpoint)
        try:
            response = self.session.request(
                method, url, params=params, json=payload, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout requesting {method} {url}")
            raise NetworkError(f"Request timed out: {url}", url=url) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {method} {url}: {e}")
            raise NetworkError(str(e), url=url) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            message = None
            if isinstance(data, dict):
                message = data.get("error") or data.get("message")
            message = message or f"Request failed with status {response.status_code}"
            logger.error(f"HTTP {response.status_code} from {method} {url}: {message}")
            raise NetworkError(message, status_code=response.status_code, url=url)

        if data is None:
            logger.error(f"Invalid JSON in response from {method} {url}")
            raise NetworkError(f"Invalid JSON response from {url}", status_code=response.status_code, url=url)

        if isinstance(data, dict) and data.get("success") is False:
            message = data.get("error") or "Request was not successful"
            logger.warning(f"{method} {url} returned success=false: {message}")
            raise NetworkError(message, status_code=response.status_code, url=url)

        return data

    def get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None,
                 platform_id: Optional[str] = None) -> Any:
        """GET an endpoint and return its decoded JSON body.

        Raises:
            NetworkError: transport failure, non-2xx status, invalid JSON,
                or a ``{success: false}`` payload
        """
        return self._request("GET", endpoint, params=params, platform_id=platform_id)

    def post_json(self, endpoint: str, payload: Dict[str, Any], platform_id: Optional[str] = None) -> Any:
        """POST a JSON body and return the decoded JSON response."""
        return self._request("POST", endpoint, payload=payload, platform_id=platform_id)

    def get_platform_schema(self, platform_id: str, refresh: bool = False) -> PlatformSchema:
        """
        Fetch and parse the schema of a platform.

        Schemas are cached by platform id, so each platform is fetched once
        per client unless ``refresh`` is set.

        Args:
            platform_id: Platform identifier (e.g., "email")
            refresh: Bypass the cache

        Returns:
            Parsed PlatformSchema

        Raises:
            NetworkError: If the request fails or the envelope has no schema
            SchemaValidationError: If the schema does not match PLATFORM_SCHEMA_SCHEMA
        """
        if not refresh:
            with self._schema_lock:
                cached = self._schema_cache.get(platform_id)
            if cached is not None:
                return cached

        data = self.get_json(f"platforms/{platform_id}/schema")
        raw_schema = None
        if isinstance(data, dict):
            platform = data.get("platform")
            if isinstance(platform, dict) and "schema" in platform:
                raw_schema = platform["schema"]
            else:
                raw_schema = data.get("schema")

        if not isinstance(raw_schema, dict):
            raise NetworkError(f"No schema returned for platform {platform_id}")

        try:
            validate_platform_schema(raw_schema)
        except SchemaValidationError:
            logger.error(f"Schema for platform {platform_id} is invalid")
            raise

        schema = PlatformSchema.from_dict(platform_id, raw_schema)
        with self._schema_lock:
            self._schema_cache[platform_id] = schema
        logger.info(f"Loaded schema for platform {platform_id} ({len(schema.blocks)} blocks)")
        return schema

    def fetch_options(self, endpoint: str, source_key: Optional[str] = None,
                      platform_id: Optional[str] = None) -> List[FieldOption]:
        """
        Load an option list and normalize it to ``{label, value}``.

        The list is read from ``options`` or, failing that, from the key
        named after the source.

        Raises:
            NetworkError: If the request fails
        """
        data = self.get_json(endpoint, platform_id=platform_id)
        items: Any = []
        if isinstance(data, dict):
            items = data.get("options")
            if not items and source_key:
                items = data.get(source_key)
        elif isinstance(data, list):
            items = data
        return normalize_options(items or [])

    def register_target(self, endpoint: str, payload: Dict[str, Any],
                        platform_id: Optional[str] = None) -> Dict[str, Any]:
        """POST a new selectable target to a data endpoint."""
        data = self.post_json(endpoint, payload, platform_id=platform_id)
        logger.info(f"Registered new target at {endpoint}")
        return data if isinstance(data, dict) else {}

    def apply_template(self, platform_id: str, template_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Call the template apply service.

        Returns the raw response; the orchestrator validates it.

        Raises:
            NetworkError: If the request fails or reports ``success: false``
        """
        data = self.post_json(f"templates/{platform_id}/{template_id}/apply", body)
        return data if isinstance(data, dict) else {}

    def get_templates(self, platform_id: str, mode: str = "raw") -> List[Dict[str, Any]]:
        """List the templates of a platform."""
        data = self.get_json(f"templates/{platform_id}", params={"mode": mode})
        templates = data.get("templates") if isinstance(data, dict) else data
        return list(templates or [])

    def get_template(self, platform_id: str, template_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one template, or None when the response carries none."""
        data = self.get_json(f"templates/{platform_id}/{template_id}")
        if isinstance(data, dict):
            return data.get("template")
        return None

    def get_template_categories(self) -> List[Dict[str, Any]]:
        data = self.get_json("templates/categories")
        return list(data.get("categories") or []) if isinstance(data, dict) else []
