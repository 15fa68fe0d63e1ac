import time
from enum import StrEnum
from typing import Any, Dict, List, Optional

import httpx

from admin import MIN_PIN_LENGTH, to_number
from kiosk import Kiosk
from observability import build_logger
from schemas import KioskConfig, Product

logger = build_logger(__name__)

ADMIN_HEADER = "X-Admin-Pass"
INCORRECT_PIN = "Incorrect PIN"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GateLocked(RuntimeError):
    pass


class KioskApi:
    """
    Thin HTTP client for the kiosk API. Any non-2xx answer raises ApiError;
    nothing is retried and no timeout is applied.
    """

    def __init__(self, base_url: str = "http://localhost:3000", client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(base_url=base_url, timeout=None)

    def _request(self, method: str, path: str, pin: Optional[str] = None, json: Any = None) -> Any:
        headers = {ADMIN_HEADER: pin} if pin is not None else {}
        response = self.client.request(method, path, json=json, headers=headers)
        if response.is_error:
            message = response.reason_phrase
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("error"):
                message = body["error"]
            raise ApiError(response.status_code, message)
        return response.json()

    def get_products(self) -> List[Product]:
        return [Product.model_validate(item) for item in self._request("GET", "/api/products")]

    def get_config(self) -> KioskConfig:
        return KioskConfig.model_validate(self._request("GET", "/api/config"))

    def check_pin(self, pin: str) -> bool:
        try:
            self._request("POST", "/api/auth", json={"pass": pin})
        except ApiError as e:
            if e.status_code == 401:
                return False
            raise
        return True

    def save_products(self, pin: str, products: List[Dict[str, Any]]) -> None:
        self._request("POST", "/api/products", pin=pin, json={"products": products})

    def save_config(self, pin: str, status: str, categories: List[str], theme: Dict[str, str]) -> KioskConfig:
        data = self._request(
            "POST", "/api/config", pin=pin, json={"status": status, "categories": categories, "theme": theme}
        )
        return KioskConfig.model_validate(data["config"])

    def update_pin(self, pin: str, new_pin: str) -> None:
        self._request("POST", "/api/password", pin=pin, json={"newPass": new_pin})


def refresh(kiosk: Kiosk, api: KioskApi):
    """Re-fetches both snapshots and hands them to the kiosk."""
    return kiosk.load_snapshot(api.get_products(), api.get_config())


class GateState(StrEnum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class AccessGate:
    """
    Client-side admin lock. Being unlocked only means a PIN is cached for the
    session; the server still checks the header on every admin request.
    """

    def __init__(self, api: KioskApi, cached_pin: Optional[str] = None):
        self.api = api
        self.state = GateState.LOCKED
        self.error = ""
        self._cached_pin = cached_pin

    @property
    def unlocked(self) -> bool:
        return self.state == GateState.UNLOCKED

    @property
    def pin(self) -> str:
        if not self.unlocked or self._cached_pin is None:
            raise GateLocked("Admin access is locked")
        return self._cached_pin

    def resume(self) -> bool:
        """Re-verifies a PIN cached from an earlier session, if any."""
        if not self._cached_pin:
            return False
        try:
            accepted = self.api.check_pin(self._cached_pin)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning(f"Could not verify cached PIN: {e}")
            accepted = False
        if accepted:
            self.state = GateState.UNLOCKED
            return True
        self.lock()
        return False

    def submit(self, pin: str) -> bool:
        if not pin:
            return False
        try:
            accepted = self.api.check_pin(pin)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning(f"PIN check failed: {e}")
            accepted = False
        if accepted:
            self._cached_pin = pin
            self.state = GateState.UNLOCKED
            self.error = ""
            return True
        logger.warning("Admin PIN rejected")
        self.state = GateState.LOCKED
        self.error = INCORRECT_PIN
        return False

    def remember(self, pin: str) -> None:
        self._cached_pin = pin

    def lock(self) -> None:
        self._cached_pin = None
        self.state = GateState.LOCKED


class AdminEditor:
    """Editing buffer behind the admin screen."""

    def __init__(self, api: KioskApi, gate: AccessGate):
        self.api = api
        self.gate = gate
        self.products: List[Dict[str, Any]] = []

    def load(self) -> List[Dict[str, Any]]:
        self.products = [product.model_dump() for product in self.api.get_products()]
        return self.products

    def add_product(self) -> Dict[str, Any]:
        product = {
            "id": f"prod-{int(time.time() * 1000)}",
            "title": "New Product",
            "category": "Misc",
            "price": 0,
            "stock": 0,
        }
        self.products.append(product)
        return product

    def remove_product(self, index: int) -> None:
        del self.products[index]

    def edit_field(self, index: int, field: str, value: Any) -> None:
        if field == "stock":
            self.products[index][field] = int(to_number(value))
        elif field == "price":
            self.products[index][field] = to_number(value)
        else:
            self.products[index][field] = value

    def save(self) -> str:
        try:
            self.api.save_products(self.gate.pin, self.products)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning(f"Saving products failed: {e}")
            return "Unable to save products"
        return "Products updated"

    def save_config(self, status: str, categories: List[str], theme: Dict[str, str]) -> KioskConfig:
        return self.api.save_config(self.gate.pin, status, categories, theme)

    def update_pin(self, new_pin: str, confirm_pin: str) -> str:
        if not new_pin or len(new_pin) < MIN_PIN_LENGTH or new_pin != confirm_pin:
            return f"PINs must match and be at least {MIN_PIN_LENGTH} digits."
        try:
            self.api.update_pin(self.gate.pin, new_pin)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning(f"PIN update failed: {e}")
            return "Unable to update PIN."
        self.gate.remember(new_pin)
        return "PIN updated successfully."
