from __future__ import annotations

import re
import unicodedata
from typing import Iterable


def gerar_fingerprint(texto: str | None, is_adicional: bool = False) -> str:
    if not texto:
        return ""
    limpo = str(texto).lower()
    limpo = unicodedata.normalize("NFD", limpo)
    limpo = "".join(ch for ch in limpo if not unicodedata.combining(ch))
    if is_adicional:
        limpo = re.sub(r"^(adicionais|adicional|acrescimos|acrescimo|extras|extra)\s*[-–]?\s*(de\s+)?", "", limpo, flags=re.I)
    limpo = re.sub(r"[^a-z0-9]", "", limpo)
    return limpo


def calcular_total_pedido(acoes: Iterable, taxa_entrega: float = 0.0, desconto: float = 0.0) -> float:
    """Soma preço x quantidade das ações ADD_PRODUCT (produtos e adicionais)."""
    total = 0.0
    for acao in acoes:
        if getattr(acao, "type", None) != "ADD_PRODUCT" or acao.product is None:
            continue
        total += float(acao.product.price or 0) * (acao.quantity or 1)
    total += taxa_entrega
    total -= desconto
    return round(total, 2)
