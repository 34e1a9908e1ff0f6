"""KiotViet public API client and client-credentials token provider."""

from datetime import date
from typing import Any, Protocol, cast

import httpx
import structlog

from kiot_board.errors import AuthenticationError, UpstreamError

logger = structlog.get_logger(__name__)

PRODUCT_TYPE_GOODS = 2
PRODUCT_TYPE_SERVICE = 3


class TokenProvider(Protocol):
    """Anything that can hand out a KiotViet bearer token."""

    async def get_token(self) -> str: ...


class KiotVietTokenProvider:
    """Fetches an access token with the OAuth client-credentials grant."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = "https://id.kiotviet.vn/connect/token",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._timeout = timeout
        self._http_client = http_client

    async def get_token(self) -> str:
        """Request a fresh access token.

        Raises:
            AuthenticationError: The endpoint refused the credentials or
                answered without an ``access_token``.
            UpstreamError: The request itself failed.
        """
        logger.info("token_requested")
        form = {
            "scopes": "PublicApi.Access",
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        client = self._http_client or httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        try:
            # httpx form-encodes ``data`` and sets the content type itself
            response = await client.post(self._token_url, data=form)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to get access token: {e}") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        if response.status_code in (400, 401, 403):
            raise AuthenticationError(
                "KiotViet rejected the client credentials",
                status_code=response.status_code,
                details=_error_detail(response),
            )
        if response.status_code >= 400:
            raise UpstreamError(
                f"Token endpoint error: {response.status_code}",
                status_code=response.status_code,
                details=_error_detail(response),
            )

        data = _json_body(response)
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("Invalid response from token endpoint", details=data)

        logger.info("token_obtained")
        return cast(str, token)


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json() if response.content else {}
    except ValueError:
        return {"raw": response.text[:500] if response.text else "empty response"}


def _json_body(response: httpx.Response) -> Any:
    """Decode a successful response; a non-JSON body is an upstream failure."""
    try:
        return response.json() if response.content else {}
    except ValueError as e:
        raise UpstreamError(
            "Invalid response format",
            status_code=response.status_code,
            details={"raw": response.text[:500] if response.text else "empty response"},
        ) from e


class KiotVietClient:
    """Async client for the KiotViet public API.

    A token is requested from the provider once per client session and reused
    for every call made through it.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        retailer: str,
        base_url: str = "https://public.kiotapi.com",
        timeout: float = 30.0,
    ):
        self._token_provider = token_provider
        self._retailer = retailer
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout

        self._access_token: str | None = None
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "KiotVietClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_token(self) -> str:
        if not self._access_token:
            self._access_token = await self._token_provider.get_token()
        return self._access_token

    def _get_headers(self, token: str) -> dict[str, str]:
        return {
            "Retailer": self._retailer,
            "Authorization": f"Bearer {token}",
        }

    async def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make an authenticated GET request.

        Raises:
            UpstreamError: Network failure or an error status from KiotViet.
        """
        token = await self._ensure_token()
        client = await self._get_client()

        try:
            response = await client.get(path, params=params, headers=self._get_headers(token))
        except httpx.HTTPError as e:
            raise UpstreamError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise UpstreamError(
                f"API error: {response.status_code}",
                status_code=response.status_code,
                details=_error_detail(response),
            )

        data = _json_body(response)
        if not isinstance(data, dict):
            raise UpstreamError("Invalid response format", details=data)
        return data

    @staticmethod
    def _extract_items(result: dict[str, Any]) -> list[dict[str, Any]]:
        items = result.get("data")
        return items if isinstance(items, list) else []

    async def list_invoices(
        self,
        from_date: date,
        to_date: date,
        status: str = "[1,3]",
        page_size: int = 200,
        order_by: str = "purchaseDate",
        order_direction: str = "Desc",
    ) -> list[dict[str, Any]]:
        """List invoices purchased inside an inclusive date window."""
        result = await self.get(
            "/invoices",
            params={
                "pageSize": page_size,
                "status": status,
                "fromPurchaseDate": from_date.isoformat(),
                "toPurchaseDate": to_date.isoformat(),
                "orderBy": order_by,
                "orderDirection": order_direction,
            },
        )
        return self._extract_items(result)

    async def list_customers(self, page_size: int = 200) -> list[dict[str, Any]]:
        """List every active customer, following ``currentItem`` pagination."""
        customers: list[dict[str, Any]] = []
        current_item = 0
        while True:
            logger.debug("customers_page_requested", current_item=current_item)
            result = await self.get(
                "/customers",
                params={
                    "pageSize": page_size,
                    "currentItem": current_item,
                    "isActive": True,
                    "orderBy": "code",
                    "orderDirection": "Asc",
                },
            )
            page = self._extract_items(result)
            customers.extend(page)
            total = result.get("total")
            current_item += page_size
            if not page or (isinstance(total, int) and current_item >= total):
                break
        return customers

    async def list_products(self, product_type: int, page_size: int = 1000) -> list[dict[str, Any]]:
        """List active products of one type (goods or services) with inventory."""
        result = await self.get(
            "/products",
            params={
                "pageSize": page_size,
                "orderBy": "code",
                "orderDirection": "ASC",
                "isActive": True,
                "productType": product_type,
                "includeInventory": True,
            },
        )
        return self._extract_items(result)
