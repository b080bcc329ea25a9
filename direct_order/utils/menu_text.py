from __future__ import annotations

from typing import Dict, List

from direct_order.services.order_interpreter.models import Menu, Product

OUTROS = "Outros"


def format_brl(value: float) -> str:
    return f"R$ {value:.2f}".replace(".", ",")


def format_menu(menu: Menu) -> str:
    """Cardápio em texto para WhatsApp, agrupado por categoria na ordem de aparição."""
    grouped: Dict[str, List[Product]] = {}
    for product in menu.products:
        if not product.available:
            continue
        grouped.setdefault(product.category or OUTROS, []).append(product)

    if not grouped:
        return "*Cardápio não disponível no momento.*"

    linhas = ["*📋 CARDÁPIO:*", ""]
    for categoria, produtos in grouped.items():
        linhas.append(f"*{categoria.upper()}*")
        for product in produtos:
            linhas.append(f"• {product.name} - {format_brl(product.price)}")
        linhas.append("")
    return "\n".join(linhas).rstrip() + "\n"
