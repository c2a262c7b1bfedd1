"""API client for the cloud drive nodes API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from .auth import TokenManager
from .config import config
from .exceptions import (
    CloudDriveAPIError,
    CloudDriveInvalidResponseError,
    CloudDriveNetworkError,
    CloudDriveNotFoundError,
    CloudDriveRequestError,
    CloudDriveStreamExhaustedError,
)
from .models import NodeKind, NodeListing, RemoteNode

if TYPE_CHECKING:
    from .multipart import MultipartBody

logger = logging.getLogger(__name__)


class CloudDriveClient:
    """Client for interacting with the cloud drive API."""

    def __init__(
        self,
        token_manager: TokenManager | None = None,
        metadata_url: str | None = None,
        content_url: str | None = None,
        endpoint_url: str | None = None,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the API client.

        Args:
            token_manager: Source of the bearer token (a TokenManager built
                from the config is used if not provided)
            metadata_url: Base URL of the metadata endpoint (uses config,
                then endpoint discovery, if not provided)
            content_url: Base URL of the content endpoint (uses config,
                then endpoint discovery, if not provided)
            endpoint_url: URL used to discover the metadata and content URLs
            timeout: Request timeout in seconds (default: 60.0)
            transport: Optional httpx transport (used by tests)
        """
        self.token_manager = token_manager or TokenManager(transport=transport)
        self.metadata_url = metadata_url or config.metadata_url
        self.content_url = content_url or config.content_url
        self.endpoint_url = endpoint_url or config.endpoint_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> CloudDriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request_error(self, response: httpx.Response) -> CloudDriveRequestError:
        """Build the exception for a failed response."""
        status_code = response.status_code
        body = response.text
        error_msg = f"API request failed with status {status_code}"

        # Try to extract more details from response body
        try:
            if response.content:
                error_data = response.json()
                if isinstance(error_data, dict):
                    msg = (
                        error_data.get("message")
                        or error_data.get("error")
                        or error_data.get("detail")
                    )
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            # Body is not JSON, keep the status-based message
            pass

        if status_code == 404:
            return CloudDriveNotFoundError(error_msg, status_code, body)
        return CloudDriveRequestError(error_msg, status_code, body)

    def _request(
        self,
        method: str,
        url: str,
        decode_json: bool = True,
        reauthenticated: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Make an authenticated API request.

        A 401 response triggers one token refresh and one retry of the same
        request. Requests whose body is a one-shot stream are not resent;
        CloudDriveStreamExhaustedError tells the caller to rebuild the body.

        Args:
            method: HTTP method
            url: Absolute request URL
            decode_json: Return the parsed JSON body instead of the text
            reauthenticated: The token was already refreshed for this
                operation, so a 401 is not answered with another refresh
            **kwargs: Additional arguments passed to httpx

        Returns:
            Parsed JSON ({} for an empty body) or the response text

        Raises:
            CloudDriveRequestError: For a non-2xx response or a second 401
            CloudDriveStreamExhaustedError: If a streamed body needs resending
            CloudDriveNetworkError: On transport failures
        """
        client = self._get_client()
        extra_headers = kwargs.pop("headers", None) or {}
        content = kwargs.get("content")
        is_stream = content is not None and not isinstance(content, (bytes, str))

        force_refresh = False
        for attempt in range(1 if reauthenticated else 0, 2):
            headers = {
                **extra_headers,
                **self.token_manager.get_auth_header(force_refresh=force_refresh),
            }
            logger.debug("%s %s (attempt %d)", method, url, attempt + 1)
            try:
                response = client.request(method, url, headers=headers, **kwargs)
            except httpx.RequestError as e:
                raise CloudDriveNetworkError(f"Network error: {e}") from e

            if response.status_code == 401 and attempt == 0:
                logger.debug("Got 401 for %s %s, refreshing token", method, url)
                force_refresh = True
                if is_stream:
                    self.token_manager.get_auth_header(force_refresh=True)
                    raise CloudDriveStreamExhaustedError(
                        f"Request body of {method} {url} was streamed and "
                        "cannot be resent after re-authentication"
                    )
                continue

            if not response.is_success:
                raise self._request_error(response)

            if not decode_json:
                return response.text
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise CloudDriveInvalidResponseError(
                    f"Invalid JSON response from {method} {url}"
                ) from e

        # Unreachable: the second attempt always returns or raises
        raise CloudDriveAPIError("Request failed after re-authentication")

    # =========================
    # Endpoints
    # =========================

    def _discover_endpoints(self) -> None:
        """Fetch the metadata and content URLs of the account."""
        logger.debug("Discovering endpoints via %s", self.endpoint_url)
        result = self._request("GET", self.endpoint_url)
        metadata_url = result.get("metadataUrl")
        content_url = result.get("contentUrl")
        if not metadata_url or not content_url:
            raise CloudDriveInvalidResponseError(
                f"Endpoint response lacks metadataUrl/contentUrl: {result}"
            )
        self.metadata_url = self.metadata_url or metadata_url
        self.content_url = self.content_url or content_url

    def _metadata(self, endpoint: str) -> str:
        if not self.metadata_url:
            self._discover_endpoints()
        return f"{str(self.metadata_url).rstrip('/')}/{endpoint.lstrip('/')}"

    def _content(self, endpoint: str) -> str:
        if not self.content_url:
            self._discover_endpoints()
        return f"{str(self.content_url).rstrip('/')}/{endpoint.lstrip('/')}"

    @staticmethod
    def _parse_node(result: Any) -> RemoteNode:
        try:
            return RemoteNode.from_api_response(result)
        except (ValueError, TypeError, AttributeError) as e:
            raise CloudDriveInvalidResponseError(
                f"Malformed node in response: {e}"
            ) from e

    @staticmethod
    def _parse_listing(result: Any) -> NodeListing:
        try:
            return NodeListing.from_api_response(result)
        except (ValueError, TypeError, AttributeError) as e:
            raise CloudDriveInvalidResponseError(
                f"Malformed listing in response: {e}"
            ) from e

    # =========================
    # Node Operations
    # =========================

    def get_root_node(self) -> RemoteNode:
        """Return the root folder of the drive.

        Raises:
            CloudDriveNotFoundError: If the server reports no root node
        """
        result = self._request(
            "GET", self._metadata("nodes"), params={"filters": "isRoot:true"}
        )
        listing = self._parse_listing(result)
        if not listing.nodes:
            raise CloudDriveNotFoundError("Root folder not found", 404)
        return listing.nodes[0]

    def get_children(
        self,
        node_id: str,
        filters: str | None = None,
        start_token: str | None = None,
    ) -> NodeListing:
        """Get one page of the children of a folder.

        Args:
            node_id: ID of the folder
            filters: Optional filter expression (e.g. "kind:FOLDER")
            start_token: Continuation token returned by the previous page

        Returns:
            NodeListing with the nodes of this page and the next token
        """
        params: dict[str, str] = {}
        if filters:
            params["filters"] = filters
        if start_token:
            params["startToken"] = start_token
        result = self._request(
            "GET", self._metadata(f"nodes/{node_id}/children"), params=params
        )
        return self._parse_listing(result)

    def create_folder(self, name: str, parent_id: str) -> RemoteNode:
        """Create a folder.

        Args:
            name: Name of the new folder
            parent_id: ID of the parent folder

        Returns:
            The created folder node
        """
        payload = {
            "name": name,
            "kind": NodeKind.FOLDER.value,
            "parents": [parent_id],
        }
        result = self._request("POST", self._metadata("nodes"), json=payload)
        return self._parse_node(result)

    def delete_child(self, parent_id: str, node_id: str) -> None:
        """Remove a node from a parent folder."""
        self._request(
            "DELETE",
            self._metadata(f"nodes/{parent_id}/children/{node_id}"),
            decode_json=False,
        )

    # =========================
    # Upload Operations
    # =========================

    def upload_new_file(
        self, body: MultipartBody, reauthenticated: bool = False
    ) -> RemoteNode:
        """Upload a new file.

        The body must carry a metadata part naming the parent folder.
        Deduplication is suppressed so that identical content can be stored
        in several folders.
        """
        result = self._request(
            "POST",
            self._content("nodes"),
            params={"suppress": "deduplication"},
            content=body.stream(),
            headers=body.headers,
            reauthenticated=reauthenticated,
        )
        return self._parse_node(result)

    def overwrite_file(
        self, node_id: str, body: MultipartBody, reauthenticated: bool = False
    ) -> RemoteNode:
        """Replace the content of an existing file."""
        result = self._request(
            "PUT",
            self._content(f"nodes/{node_id}/content"),
            content=body.stream(),
            headers=body.headers,
            reauthenticated=reauthenticated,
        )
        return self._parse_node(result)
