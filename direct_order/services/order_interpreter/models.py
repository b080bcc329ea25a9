"""Modelos de dados para o Order Interpreter."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

# Tipos de ação devolvidos ao consumidor (carrinho / máquina de estados)
ADD_PRODUCT = "ADD_PRODUCT"
SHOW_MENU = "SHOW_MENU"
SHOW_PIX = "SHOW_PIX"
REMOVE_ITEM = "REMOVE_ITEM"
DELIVERY = "DELIVERY"
PICKUP = "PICKUP"
CONFIRM = "CONFIRM"
CANCEL = "CANCEL"
BACK = "BACK"
HELP = "HELP"
RESET = "RESET"
GREETING = "GREETING"

ITEM_PRODUCT = "product"
ITEM_ADDON = "addon"


def _to_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace("R$", "").strip().replace(",", ".")
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("0", "false", "nao", "não", "n", "")
    return bool(value)


@dataclass
class Product:
    """Produto do cardápio (somente leitura para o interpretador)."""

    id: Any
    name: str
    price: float
    available: bool = True
    category: Optional[str] = None
    sizes: List[str] = field(default_factory=list)
    size_prices: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["Product"]:
        """Monta um Product a partir de uma linha do catálogo; None se a linha for inválida."""
        name = (row.get("name") or row.get("nome") or "").strip()
        price = _to_price(row.get("price", row.get("preco")))
        if not name or price is None:
            return None

        available = row.get("available", row.get("is_available", True))
        size_prices: Dict[str, float] = {}
        for size, raw in (row.get("size_prices") or {}).items():
            parsed = _to_price(raw)
            if parsed is not None:
                size_prices[str(size)] = parsed

        return cls(
            id=row.get("id"),
            name=name,
            price=price,
            available=_to_bool(available),
            category=row.get("category") or row.get("category_name"),
            sizes=[str(s) for s in (row.get("sizes") or [])],
            size_prices=size_prices,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "available": self.available,
            "category": self.category,
            "sizes": list(self.sizes),
            "size_prices": dict(self.size_prices),
        }


@dataclass
class Addon:
    """Adicional pago (ex: bacon extra)."""

    id: Any
    name: str
    price: float

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["Addon"]:
        name = (row.get("name") or row.get("nome") or "").strip()
        price = _to_price(row.get("price", row.get("preco")))
        if not name or price is None:
            return None
        return cls(id=row.get("id"), name=name, price=price)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": self.price}


@dataclass
class Menu:
    """Snapshot do cardápio de um tenant para uma análise."""

    products: List[Product] = field(default_factory=list)
    addons: List[Addon] = field(default_factory=list)

    @classmethod
    def from_dicts(
        cls,
        products: Iterable[Dict[str, Any]] = (),
        addons: Iterable[Dict[str, Any]] = (),
    ) -> "Menu":
        """Converte linhas cruas do catálogo, descartando entradas sem nome ou preço."""
        parsed_products = []
        for row in products or ():
            product = Product.from_dict(row)
            if product is None:
                logger.warning(f"Produto inválido ignorado no cardápio: {row!r}")
                continue
            parsed_products.append(product)

        parsed_addons = []
        for row in addons or ():
            addon = Addon.from_dict(row)
            if addon is None:
                logger.warning(f"Adicional inválido ignorado no cardápio: {row!r}")
                continue
            parsed_addons.append(addon)

        return cls(products=parsed_products, addons=parsed_addons)


@dataclass
class Modifiers:
    """Modificadores extraídos de um segmento."""

    additions: List[str] = field(default_factory=list)
    removals: List[str] = field(default_factory=list)
    preparation: Optional[str] = None
    found_addons: List[Addon] = field(default_factory=list)


@dataclass
class MatchResult:
    """Item reconhecido em um segmento (produto ou adicional pago)."""

    product: Union[Product, Addon]
    quantity: int = 1
    notes: str = ""
    matched_keyword: str = ""
    type: str = ITEM_PRODUCT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "notes": self.notes,
            "matched_keyword": self.matched_keyword,
            "type": self.type,
        }


@dataclass
class Action:
    """Ação para o consumidor do interpretador."""

    type: str
    product: Optional[Union[Product, Addon]] = None
    quantity: int = 1
    notes: str = ""
    matched_keyword: str = ""
    item_type: Optional[str] = None

    @classmethod
    def from_match(cls, match: MatchResult) -> "Action":
        return cls(
            type=ADD_PRODUCT,
            product=match.product,
            quantity=match.quantity,
            notes=match.notes,
            matched_keyword=match.matched_keyword,
            item_type=match.type,
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.product is None:
            return {"type": self.type}
        return {
            "type": self.type,
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "notes": self.notes,
            "matched_keyword": self.matched_keyword,
            "item_type": self.item_type,
        }
