"""Backend REST API client."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiohttp

from foodswipe.config.settings import get_settings
from foodswipe.core.exceptions import (
    GENERIC_ERROR_MESSAGE,
    AuthorizationError,
    NetworkError,
    PayloadError,
    ServerRejectedError,
)
from foodswipe.core.session import Session
from foodswipe.schemas.base import parse_list, parse_payload
from foodswipe.schemas.notification import Notification
from foodswipe.schemas.order import Order, OrderCreate, StatusUpdate
from foodswipe.schemas.restaurant import DashboardStats, Restaurant
from foodswipe.schemas.rider import PayoutRecord, RiderEarnings, RiderProfile
from foodswipe.schemas.voucher import Voucher, VoucherVerification

logger = logging.getLogger(__name__)
settings = get_settings()


def error_message(payload: Any, fallback: str = GENERIC_ERROR_MESSAGE) -> str:
    """Pick the user-facing message out of an error payload."""
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return fallback


class BackendClient:
    """
    REST client for the marketplace backend.

    Every protected call reads the bearer token from the ``Session`` before
    touching the network. Responses are validated into schemas here, so
    callers never see raw payloads. A 401 clears the session before
    ``AuthorizationError`` is raised.
    """

    def __init__(self, session: Session, base_url: str = None, timeout: float = None):
        self.auth = session
        self.base_url = base_url or settings.API_URL
        self.timeout = timeout or settings.API_TIMEOUT_SECONDS
        self.session: Optional[aiohttp.ClientSession] = None

        if not self.base_url:
            raise ValueError("Backend API URL must be provided")

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self):
        """Ensure aiohttp session is created."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json"}
            )

    async def close(self):
        """Close the aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        form: Optional[aiohttp.FormData] = None,
        auth: bool = True
    ) -> Any:
        """Make HTTP request to the backend and decode the JSON body."""
        headers = {}
        if auth:
            # Raises before any network traffic when signed out
            headers["Authorization"] = f"Bearer {self.auth.require_token()}"

        await self._ensure_session()
        url = f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

        try:
            async with self.session.request(
                method=method,
                url=url,
                json=data if form is None else None,
                data=form,
                params=params,
                headers=headers
            ) as response:
                response_text = await response.text()
                logger.debug(f"Backend {method} {url} - Status: {response.status}")

                try:
                    payload = json.loads(response_text) if response_text else {}
                except json.JSONDecodeError:
                    payload = {"raw_response": response_text}

                if response.status == 401:
                    logger.warning(f"Backend rejected token on {method} {endpoint}; clearing session")
                    self.auth.clear()
                    raise AuthorizationError(response_data=payload if isinstance(payload, dict) else None)

                if response.status >= 400:
                    logger.error(f"Backend error: {response.status} on {method} {endpoint} - {response_text[:200]}")
                    raise ServerRejectedError(
                        error_message(payload),
                        status_code=response.status,
                        response_data=payload if isinstance(payload, dict) else None
                    )

                return payload

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Backend network error on {method} {endpoint}: {e!r}")
            raise NetworkError()

    # Settings

    async def get_public_settings(self) -> Dict[str, Any]:
        """Fee and feature settings published by the platform."""
        payload = await self._make_request("GET", "/api/settings", auth=False)
        if not isinstance(payload, dict):
            raise PayloadError("Malformed settings response")
        return payload

    # Orders

    async def create_order(self, order: OrderCreate) -> Order:
        payload = await self._make_request("POST", "/api/orders", order.to_payload())
        return parse_payload(Order, payload, "order response")

    async def get_my_orders(self) -> List[Order]:
        payload = await self._make_request("GET", "/api/orders/my-orders")
        return parse_list(Order, payload, "customer orders")

    async def get_restaurant_orders(self) -> List[Order]:
        payload = await self._make_request("GET", "/api/orders/restaurant/my-orders")
        return parse_list(Order, payload, "restaurant orders")

    async def update_order_status(self, order_id: str, update: StatusUpdate) -> Order:
        payload = await self._make_request("PUT", f"/api/orders/{order_id}/status", update.to_payload())
        return parse_payload(Order, _unwrap(payload, "order"), "status response")

    async def complete_order(self, order_id: str, distance_km: float) -> Dict[str, Any]:
        """Mark delivered; the response may carry the server's earning figure."""
        payload = await self._make_request("POST", f"/api/orders/{order_id}/complete", {"distanceKm": distance_km})
        return payload if isinstance(payload, dict) else {}

    async def cancel_order(self, order_id: str, reason: str) -> Order:
        payload = await self._make_request("PATCH", f"/api/orders/{order_id}/cancel", {"reason": reason})
        return parse_payload(Order, _unwrap(payload, "order"), "cancel response")

    async def rate_rider(self, order_id: str, rating: int, review: str = "") -> Dict[str, Any]:
        return await self._make_request("POST", f"/api/orders/{order_id}/rate-rider", {"rating": rating, "review": review})

    async def send_order_message(self, order_id: str, text: str) -> Dict[str, Any]:
        return await self._make_request("POST", f"/api/orders/{order_id}/messages", {"message": text})

    # Riders

    async def get_rider(self, rider_id: str) -> RiderProfile:
        payload = await self._make_request("GET", f"/api/riders/{rider_id}")
        return parse_payload(RiderProfile, payload, "rider profile")

    async def get_rider_orders(self, rider_id: str) -> List[Order]:
        payload = await self._make_request("GET", f"/api/riders/{rider_id}/orders")
        return parse_list(Order, payload, "rider orders")

    async def get_available_orders(self, rider_id: str) -> List[Order]:
        payload = await self._make_request("GET", f"/api/riders/{rider_id}/available-orders")
        return parse_list(Order, payload, "available orders")

    async def accept_delivery(self, rider_id: str, order_id: str) -> Dict[str, Any]:
        return await self._make_request("POST", f"/api/riders/{rider_id}/accept-order", {"orderId": order_id})

    async def reject_delivery(self, rider_id: str, order_id: str) -> Dict[str, Any]:
        return await self._make_request("POST", f"/api/riders/{rider_id}/reject-order", {"orderId": order_id})

    async def mark_picked_up(self, rider_id: str, order_id: str) -> Dict[str, Any]:
        return await self._make_request("PUT", f"/api/riders/{rider_id}/orders/{order_id}/pickup", {})

    async def get_rider_earnings(self, rider_id: str) -> RiderEarnings:
        payload = await self._make_request("GET", f"/api/riders/{rider_id}/earnings")
        return parse_payload(RiderEarnings, payload, "rider earnings")

    async def request_payout(self, amount: float) -> Dict[str, Any]:
        return await self._make_request("POST", "/api/riders/me/request-payout", {"amount": amount})

    # Payouts

    async def get_payout_history(self) -> List[PayoutRecord]:
        payload = await self._make_request("GET", "/api/payouts/history")
        return parse_list(PayoutRecord, payload, "payout history")

    # Restaurants

    async def get_my_restaurant(self) -> Restaurant:
        payload = await self._make_request("GET", "/api/restaurants/my-restaurant")
        return parse_payload(Restaurant, _unwrap(payload, "restaurant"), "restaurant")

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        payload = await self._make_request("GET", f"/api/restaurants/{restaurant_id}", auth=False)
        return parse_payload(Restaurant, _unwrap(payload, "restaurant"), "restaurant")

    async def get_dashboard_stats(self) -> DashboardStats:
        payload = await self._make_request("GET", "/api/dashboard/stats")
        return parse_payload(DashboardStats, payload, "dashboard stats")

    # Vouchers

    async def get_restaurant_vouchers(self, restaurant_id: str) -> List[Voucher]:
        payload = await self._make_request("GET", f"/api/vouchers/restaurant/{restaurant_id}", auth=False)
        return parse_list(Voucher, payload, "restaurant vouchers")

    async def verify_voucher(self, code: str, amount: float) -> Voucher:
        payload = await self._make_request("POST", "/api/vouchers/verify", {"code": code.upper(), "amount": amount})
        return parse_payload(VoucherVerification, payload, "voucher verification").voucher

    # Notifications

    async def get_notifications(self) -> List[Notification]:
        payload = await self._make_request("GET", "/api/notifications")
        return parse_list(Notification, payload, "notifications")

    async def mark_notification_read(self, notification_id: str) -> Dict[str, Any]:
        return await self._make_request("PUT", f"/api/notifications/{notification_id}/read", {})

    async def mark_all_notifications_read(self) -> Dict[str, Any]:
        return await self._make_request("PUT", "/api/notifications/read-all", {})

    # Uploads

    async def upload_file(self, file: Union[str, Path, bytes], filename: str = "upload.bin", content_type: str = "application/octet-stream") -> str:
        """Upload a file and return the stored path the backend assigned."""
        content = Path(file).read_bytes() if isinstance(file, (str, Path)) else file
        if isinstance(file, (str, Path)):
            filename = Path(file).name

        form = aiohttp.FormData()
        form.add_field("file", content, filename=filename, content_type=content_type)
        payload = await self._make_request("POST", "/api/upload", form=form)

        if isinstance(payload, str):
            return payload
        stored = payload.get("path") or payload.get("url") or payload.get("imageUrl") if isinstance(payload, dict) else None
        if not stored:
            raise PayloadError("Upload response did not include a stored path")
        return stored


def _unwrap(payload: Any, key: str) -> Any:
    """Some endpoints nest the document under a key; others return it bare."""
    if isinstance(payload, dict) and isinstance(payload.get(key), dict):
        return payload[key]
    return payload
