"""Order Interpreter - Interpreta pedidos de clientes em linguagem natural."""

from direct_order.services.order_interpreter.lexicon import Lexicon
from direct_order.services.order_interpreter.models import (
    Action,
    Addon,
    MatchResult,
    Menu,
    Product,
)
from direct_order.services.order_interpreter.service import (
    OrderInterpreterService,
    analyze_message,
    find_all_products,
)

__all__ = [
    "OrderInterpreterService",
    "analyze_message",
    "find_all_products",
    "Lexicon",
    "Action",
    "Addon",
    "MatchResult",
    "Menu",
    "Product",
]
