from decimal import Decimal
from typing import Dict, Any, Iterable, List

from sqlalchemy.orm import Session

from orderflow.data.models.cart import CartModel
from orderflow.data.models.cart_item import CartItemModel
from orderflow.domain.errors import (
    ConcurrencyConflict,
    InsufficientStock,
    InvalidQuantity,
    ItemNotFound,
    ItemUnavailable,
)
from orderflow.domain.snapshots import ProductInfo
from orderflow.repos.cart_repo import CartRepo
from orderflow.services.product_client import ProductClient
from orderflow.utils.settings import MAX_ITEM_QUANTITY
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")


class CartService:
    """
    Prosta implementacja cqrs i proste use case dla domeny cart
    commands (add, update, remove, save/move, remove coupon) modyfikuja stan
    query (get) tylko odczyt + naprawa rozjechanych sum

    Kazda zmiana linii kasuje kupon i liczy sumy od zera - rabat nie przezyje
    zmiany koszyka, wzgledem ktorej nie byl liczony.
    """

    def __init__(self, db: Session, product_client: ProductClient):
        self.repo = CartRepo(db)
        self.product_client = product_client

    #query - odczyt
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_or_create_cart(user_id)
        items = self.repo.get_cart_items(cart.id)
        saved = self.repo.get_cart_items(cart.id, saved=True)
        products = self._fetch_products(items + saved)

        dirty = False

        #usun linie produktow ktorych juz nie ma w katalogu
        gone = [i for i in items if products.get(i.product_id) is None]
        if gone:
            logger.info(f"Koszyk {cart.id}: usuwam {len(gone)} linii z usunietymi produktami")
            for item in gone:
                self.repo.delete_cart_item(item)
            items = [i for i in items if i not in gone]
            dirty = True

        #suma z bazy rozna od faktycznej (np. produkt wyprzedany) -> przelicz i zdejmij kupon
        subtotal = self._subtotal(items, products)
        if subtotal != (cart.total_price or ZERO):
            dirty = True

        if dirty:
            self._commit_version(cart, CartRepo.totals_payload(subtotal, ZERO))

        return self._view(cart, items, saved, products)

    #commands
    def add_product(
        self,
        user_id: int,
        product_id: int,
        size: str,
        quantity: int,
    ) -> Dict[str, Any]:

        # Walidacje
        if quantity <= 0:
            raise InvalidQuantity("Quantity must be greater than 0")
        if quantity > MAX_ITEM_QUANTITY:
            raise InvalidQuantity(f"Max {MAX_ITEM_QUANTITY} units per item.")

        cart = self.repo.get_or_create_cart(user_id)

        logger.info(f"Pobieranie danych produktu {product_id} z product-service")
        product = self.product_client.fetch_product(product_id)
        if not product.is_active:
            raise ItemUnavailable("Product unavailable")

        size_stock = product.size_stock(size)
        if size_stock is None:
            raise ItemUnavailable("Selected size not found")

        existing_item = self.repo.find_line(cart.id, product_id, size)

        if existing_item:
            new_qty = existing_item.quantity + quantity
            if new_qty > MAX_ITEM_QUANTITY:
                raise InvalidQuantity(f"Limit reached (Max {MAX_ITEM_QUANTITY} per item).")
            if new_qty > size_stock:
                raise InsufficientStock(
                    f"Only {size_stock} units of size {size} are available. "
                    f"You already have {existing_item.quantity} in cart."
                )
            logger.info(
                f"Produkt {product_id} już jest w koszyku, zwiekszam ilosc "
                f"z {existing_item.quantity} do {new_qty}"
            )
            existing_item.quantity = new_qty
        else:
            if quantity > size_stock:
                raise InsufficientStock(f"Only {size_stock} units left for size {size}.")
            logger.info(f"Dodaje nowy produkt {product_id} do koszyka {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    product_id=product_id,
                    size=size,
                    quantity=quantity,
                    price=product.price,
                    saved=False,
                )
            )

        return self._recalculate_and_commit(cart, known={product.id: product})

    def update_quantity(self, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise InvalidQuantity("Quantity must be greater than 0")
        if quantity > MAX_ITEM_QUANTITY:
            raise InvalidQuantity(f"Max {MAX_ITEM_QUANTITY} units per item.")

        cart = self.repo.get_or_create_cart(user_id)
        item = self.repo.get_cart_item(cart.id, item_id)
        if not item:
            raise ItemNotFound()

        product = self.product_client.fetch_product(item.product_id)
        size_stock = product.size_stock(item.size) if item.size else None
        if size_stock is not None and quantity > size_stock:
            raise InsufficientStock(f"Only {size_stock} units available for size {item.size}.")

        item.quantity = quantity
        return self._recalculate_and_commit(cart, known={product.id: product})

    def remove_product(self, user_id: int, item_id: int) -> Dict[str, Any]:
        cart = self.repo.get_or_create_cart(user_id)
        item = self.repo.get_cart_item(cart.id, item_id)
        if not item:
            raise ItemNotFound()

        logger.info(f"Usuwanie linii {item_id} (produkt {item.product_id}) z koszyka {cart.id}")
        self.repo.delete_cart_item(item)
        return self._recalculate_and_commit(cart)

    def save_for_later(self, user_id: int, item_id: int) -> Dict[str, Any]:
        cart = self.repo.get_or_create_cart(user_id)
        item = self.repo.get_cart_item(cart.id, item_id)
        if not item:
            raise ItemNotFound("Item not found in cart")

        item.saved = True
        return self._recalculate_and_commit(cart)

    def move_to_cart(self, user_id: int, saved_item_id: int) -> Dict[str, Any]:
        cart = self.repo.get_or_create_cart(user_id)
        saved_item = self.repo.get_cart_item(cart.id, saved_item_id, saved=True)
        if not saved_item:
            raise ItemNotFound("Item not found in saved list")

        product = self.product_client.fetch_product(saved_item.product_id)
        if not product.is_active:
            raise ItemUnavailable("Product is no longer available.")

        size_stock = product.size_stock(saved_item.size)
        if size_stock is None or size_stock < saved_item.quantity:
            raise InsufficientStock(f"Not enough stock available for size {saved_item.size}.")

        existing = self.repo.find_line(cart.id, saved_item.product_id, saved_item.size)
        current_qty = existing.quantity if existing else 0
        if current_qty + saved_item.quantity > MAX_ITEM_QUANTITY:
            raise InvalidQuantity(f"Cannot move. Exceeds limit of {MAX_ITEM_QUANTITY} items.")

        if existing:
            existing.quantity += saved_item.quantity
            self.repo.delete_cart_item(saved_item)
        else:
            saved_item.saved = False
            saved_item.price = product.price  # aktualna cena

        return self._recalculate_and_commit(cart, known={product.id: product})

    def remove_saved_item(self, user_id: int, saved_item_id: int) -> Dict[str, Any]:
        cart = self.repo.get_or_create_cart(user_id)
        saved_item = self.repo.get_cart_item(cart.id, saved_item_id, saved=True)
        if not saved_item:
            raise ItemNotFound("Item not found in saved list")

        self.repo.delete_cart_item(saved_item)
        self._commit_version(cart, {})
        return self.get_cart(user_id)

    def remove_coupon(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_or_create_cart(user_id)
        total = cart.total_price or ZERO
        self._commit_version(cart, CartRepo.totals_payload(total, ZERO))
        return self.get_cart(user_id)

    # helpers
    def _recalculate_and_commit(self, cart: CartModel, known: Dict[int, ProductInfo] | None = None):
        items = self.repo.get_cart_items(cart.id)
        products = self._fetch_products(items, known)
        subtotal = self._subtotal(items, products)

        self._commit_version(cart, CartRepo.totals_payload(subtotal, ZERO))
        logger.info(f"Koszyk {cart.id} przeliczony, suma {subtotal}, nowa wersja: {cart.version}")

        saved = self.repo.get_cart_items(cart.id, saved=True)
        products.update(self._fetch_products(saved, products))
        return self._view(cart, items, saved, products)

    def _commit_version(self, cart: CartModel, new_data: dict) -> None:
        # Optimistic locking
        # np w bazie update set version 2 where id 1 and version 1
        old_version = cart.version
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=old_version,
            new_data={**new_data, "version": old_version + 1},
        )

        if rowcount == 0:
            self.repo.rollback()
            raise ConcurrencyConflict(
                "Cart was modified by another operation"
            )

        self.repo.commit()
        self.repo.db.refresh(cart)

    def _fetch_products(
        self,
        items: Iterable[CartItemModel],
        known: Dict[int, ProductInfo] | None = None,
    ) -> Dict[int, ProductInfo | None]:
        products: Dict[int, ProductInfo | None] = dict(known or {})
        for item in items:
            if item.product_id in products:
                continue
            try:
                products[item.product_id] = self.product_client.fetch_product(item.product_id)
            except ItemUnavailable:
                products[item.product_id] = None
        return products

    @staticmethod
    def _subtotal(items: Iterable[CartItemModel], products: Dict[int, ProductInfo | None]) -> Decimal:
        #tylko aktywne produkty ze stanem > 0
        total = ZERO
        for item in items:
            product = products.get(item.product_id)
            if product is not None and product.is_available:
                total += item.price * item.quantity
        return total

    @staticmethod
    def _view(
        cart: CartModel,
        items: List[CartItemModel],
        saved: List[CartItemModel],
        products: Dict[int, ProductInfo | None],
    ) -> Dict[str, Any]:

        def line(i: CartItemModel) -> Dict[str, Any]:
            product = products.get(i.product_id)
            unavailable = product is None or not product.is_available
            return {
                "id": i.id,
                "product_id": i.product_id,
                "size": i.size,
                "quantity": i.quantity,
                "price": i.price,
                "is_out_of_stock": unavailable,
                "max_stock": 0 if unavailable else product.stock_quantity,
            }

        #dict przyksztalcany w jsona
        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": [line(i) for i in items],
            "saved_items": [line(i) for i in saved],
            "total_price": cart.total_price,
            "discount_amount": cart.discount_amount,
            "total_after_discount": cart.total_after_discount,
            "coupon": cart.coupon_code if cart.coupon_id or cart.coupon_code else None,
        }
