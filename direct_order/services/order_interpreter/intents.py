"""Detecção de intenções fixas por palavra-chave (cardápio, pix, entrega...)."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from direct_order.services.order_interpreter.models import (
    BACK,
    CANCEL,
    CONFIRM,
    DELIVERY,
    GREETING,
    HELP,
    PICKUP,
    REMOVE_ITEM,
    RESET,
    SHOW_MENU,
    SHOW_PIX,
)
from direct_order.services.order_interpreter.normalizer import normalize_text

# Ordem de emissão das intenções quando várias aparecem na mesma mensagem
INTENT_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (SHOW_MENU, ("cardapio", "menu", "opcoes")),
    (SHOW_PIX, ("pix", "chave")),
    (REMOVE_ITEM, ("c", "remover", "tira", "tirar")),
    (DELIVERY, ("entrega", "entregar", "entregam", "levar")),
    (PICKUP, ("buscar", "busco", "pegar", "retirada", "retirar", "vou buscar")),
    (CONFIRM, ("s", "sim", "isso", "correto", "confirmo", "confirmar")),
    (CANCEL, ("n", "nao", "cancelar", "cancela")),
    (BACK, ("voltar", "volta", "retornar", "v")),
    (HELP, ("ajuda", "help", "suporte")),
    (RESET, ("reiniciar", "limpar", "novo", "pedir")),
)

# Palavras soltas das intenções; nunca viram observação de item
INTENT_WORDS = frozenset(
    keyword for _, keywords in INTENT_KEYWORDS for keyword in keywords if " " not in keyword
)

_GREETING_RE = re.compile(r"^(oi|ola|opa|bom dia|boa tarde|boa noite|inicio|comecar)\b")
_MENU_RE = re.compile(r"^(menu|cardapio)\b")


def _contains_phrase(joined: str, phrase: str) -> bool:
    return f" {phrase} " in joined


def detect_intents(tokens: Sequence[str]) -> List[str]:
    """
    Intenções presentes na mensagem, uma vez cada, na ordem da tabela.

    Args:
        tokens: Tokens normalizados da mensagem inteira
    """
    words = set(tokens)
    joined = f" {' '.join(tokens)} "
    found: List[str] = []
    for intent, keywords in INTENT_KEYWORDS:
        for keyword in keywords:
            hit = _contains_phrase(joined, keyword) if " " in keyword else keyword in words
            if hit:
                found.append(intent)
                break
    return found


def fallback_intent(message: str) -> Optional[str]:
    """Saudação ou pedido de cardápio quando nada mais foi reconhecido."""
    text = normalize_text(message)
    if _GREETING_RE.match(text):
        return GREETING
    if _MENU_RE.match(text):
        return SHOW_MENU
    return None
