"""
Storefront state for the kiosk screen: the cart engine, the category filter
and the status gate.

All state lives in one ``KioskState`` owned by a ``Kiosk``. Every mutation is
followed by a full render pass: the catalog grid and the cart panel are
rebuilt from the state and handed to the registered listeners. Product and
config data are snapshots; they only change when ``load_snapshot`` is called
with a fresh fetch.
"""
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

from observability import build_logger
from schemas import KioskConfig, KioskStatus, Product

logger = build_logger(__name__)

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class StatusMeta:
    label: str
    class_name: str
    banner: str


STATUS_META: Dict[KioskStatus, StatusMeta] = {
    KioskStatus.LIVE: StatusMeta("Live", "status-live", ""),
    KioskStatus.MAINTENANCE: StatusMeta("Maintenance", "status-maintenance", "Machine is under maintenance."),
    KioskStatus.OUT_OF_SERVICE: StatusMeta(
        "Out of Service", "status-out_of_service", "This unit is currently unavailable."
    ),
}


@dataclass
class CartLine:
    id: str
    title: str
    category: str
    price: float
    stock: int
    quantity: int

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartLine":
        return cls(
            id=product.id,
            title=product.title,
            category=product.category,
            price=product.price,
            stock=product.stock,
            quantity=quantity,
        )

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


@dataclass
class KioskState:
    products: List[Product] = field(default_factory=list)
    cart: List[CartLine] = field(default_factory=list)
    config: KioskConfig = field(default_factory=KioskConfig)
    category_filter: str = ALL_CATEGORIES

    @property
    def is_live(self) -> bool:
        return self.config.status == KioskStatus.LIVE

    def find_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def find_line(self, product_id: str) -> Optional[CartLine]:
        return next((line for line in self.cart if line.id == product_id), None)


# View models handed to the UI layer


@dataclass(frozen=True)
class StatusView:
    status: KioskStatus
    label: str
    class_name: str
    banner: str
    banner_visible: bool
    controls_enabled: bool
    overlay_visible: bool
    overlay_title: str
    overlay_message: str


@dataclass(frozen=True)
class ProductCard:
    id: str
    title: str
    category: str
    price_label: str
    stock_label: str
    quantity: int
    stock_left: int
    decrement_enabled: bool
    increment_enabled: bool


@dataclass(frozen=True)
class CartPanel:
    lines: List[CartLine]
    empty_message: Optional[str]
    total_label: str
    count_label: str
    controls_enabled: bool
    checkout_enabled: bool
    checkout_label: str


@dataclass(frozen=True)
class Frame:
    status: StatusView
    categories: List[str]
    active_category: str
    catalog: List[ProductCard]
    cart: CartPanel
    empty_catalog_message: Optional[str] = None


@dataclass(frozen=True)
class Receipt:
    total: float
    lines: List[CartLine]

    @property
    def message(self) -> str:
        return f"Checkout successful!\nTotal: {format_currency(self.total)}"


# Pure helpers

def format_currency(value: Optional[float]) -> str:
    return f"₹{(value or 0):,.2f}"


def cart_quantity(state: KioskState, product_id: str) -> int:
    line = state.find_line(product_id)
    return line.quantity if line else 0


def stock_left(state: KioskState, product: Product) -> int:
    return max(product.stock - cart_quantity(state, product.id), 0)


def cart_total(state: KioskState) -> float:
    return sum(line.subtotal for line in state.cart)


def item_count(state: KioskState) -> int:
    return sum(line.quantity for line in state.cart)


def status_view(status: KioskStatus) -> StatusView:
    meta = STATUS_META.get(status, STATUS_META[KioskStatus.LIVE])
    return StatusView(
        status=status,
        label=meta.label,
        class_name=meta.class_name,
        banner=meta.banner,
        banner_visible=bool(meta.banner),
        controls_enabled=status == KioskStatus.LIVE,
        overlay_visible=status == KioskStatus.OUT_OF_SERVICE,
        overlay_title=meta.label,
        overlay_message=meta.banner or "Please check back soon.",
    )


def category_options(state: KioskState) -> List[str]:
    if state.config.categories:
        return list(state.config.categories)
    return sorted({p.category for p in state.products})


def matches_filter(product: Product, category: str) -> bool:
    return category == ALL_CATEGORIES or product.category == category


def filtered_products(state: KioskState) -> List[Product]:
    return [p for p in state.products if matches_filter(p, state.category_filter)]


def render_catalog(state: KioskState) -> List[ProductCard]:
    controls = state.is_live
    cards = []
    for product in filtered_products(state):
        quantity = cart_quantity(state, product.id)
        left = stock_left(state, product)
        cards.append(
            ProductCard(
                id=product.id,
                title=product.title,
                category=product.category,
                price_label=format_currency(product.price),
                stock_label=f"{left} left" if left > 0 else "Out of stock",
                quantity=quantity,
                stock_left=left,
                decrement_enabled=controls,
                increment_enabled=controls and left > 0,
            )
        )
    return cards


def render_cart(state: KioskState) -> CartPanel:
    locked = not state.is_live
    if locked:
        empty_message = "Machine unavailable right now"
    elif not state.cart:
        empty_message = "Cart is empty"
    else:
        empty_message = None
    count = item_count(state)
    return CartPanel(
        lines=[] if locked else [replace(line) for line in state.cart],
        empty_message=empty_message,
        total_label=format_currency(cart_total(state)),
        count_label=f"{count} item{'' if count == 1 else 's'}",
        controls_enabled=not locked,
        checkout_enabled=not locked and bool(state.cart),
        checkout_label="Unavailable" if locked else "Checkout",
    )


RenderListener = Callable[[Frame], None]


class Kiosk:
    """Owns the storefront state and re-renders after every change."""

    def __init__(self, state: Optional[KioskState] = None):
        self.state = state or KioskState()
        self.frame: Optional[Frame] = None
        self._listeners: List[RenderListener] = []

    def subscribe(self, listener: RenderListener) -> None:
        self._listeners.append(listener)

    def render(self) -> Frame:
        options = category_options(self.state)
        if self.state.category_filter != ALL_CATEGORIES and self.state.category_filter not in options:
            self.state.category_filter = ALL_CATEGORIES
        catalog = render_catalog(self.state)
        self.frame = Frame(
            status=status_view(self.state.config.status),
            categories=options,
            active_category=self.state.category_filter,
            catalog=catalog,
            cart=render_cart(self.state),
            empty_catalog_message=None if catalog else "No items to display.",
        )
        for listener in self._listeners:
            listener(self.frame)
        return self.frame

    def load_snapshot(self, products: List[Product], config: KioskConfig) -> Frame:
        """
        Installs freshly fetched data and reconciles the cart with it: lines
        for vanished products are dropped and quantities are clamped to the
        new stock.
        """
        self.state.products = list(products)
        self.state.config = config
        kept = []
        for line in self.state.cart:
            product = self.state.find_product(line.id)
            if product is None:
                continue
            line.quantity = min(line.quantity, product.stock)
            if line.quantity > 0:
                kept.append(line)
        if len(kept) != len(self.state.cart):
            logger.info(f"Dropped {len(self.state.cart) - len(kept)} cart lines after refresh")
        self.state.cart = kept
        return self.render()

    def change_quantity(self, product_id: str, delta: int) -> None:
        if not self.state.is_live:
            return
        product = self.state.find_product(product_id)
        if product is None:
            return

        line = self.state.find_line(product_id)
        if line is not None:
            line.quantity = min(line.quantity + delta, product.stock)
            if line.quantity <= 0:
                self.state.cart.remove(line)
        elif delta > 0 and product.stock > 0:
            self.state.cart.append(CartLine.from_product(product))

        self.render()

    def set_filter(self, category: str) -> None:
        self.state.category_filter = category
        self.render()

    def checkout(self) -> Optional[Receipt]:
        if not self.state.is_live or not self.state.cart:
            return None
        receipt = Receipt(total=cart_total(self.state), lines=[replace(line) for line in self.state.cart])
        self.state.cart = []
        self.render()
        return receipt
