"""Geração automática de palavras-chave a partir do nome do produto."""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from direct_order.services.order_interpreter.lexicon import BUILTIN_IGNORED_WORDS
from direct_order.services.order_interpreter.modifier_extractor import (
    ADDITION_TRIGGERS,
    REMOVAL_TRIGGERS,
)
from direct_order.services.order_interpreter.normalizer import normalize_phrase

MIN_KEYWORD_LENGTH = 3

# Variações comuns de escrita (chave e valores já normalizados)
SYNONYM_MAP: Dict[str, Tuple[str, ...]] = {
    # Bebidas
    "coca cola": ("coca", "cocacola", "koka"),
    "coca": ("coca cola", "cocacola"),
    "guarana": ("guarana antarctica", "antartica"),
    "fanta": ("fanta laranja",),
    "sprite": ("sprit",),
    # Tamanhos
    "2l": ("2 litros", "dois litros"),
    "1l": ("1 litro", "um litro"),
    "600ml": ("600", "seiscentos"),
    "lata": ("latinha",),
    # Lanches
    "x": ("xis",),
    "xis": ("x",),
    "hamburger": ("hamburguer", "burger"),
    "hamburguer": ("hamburger", "burger"),
    "bacon": ("baicon", "becon"),
    "frango": ("galinha",),
    "calabresa": ("calabreza",),
    # Pizzas
    "mussarela": ("mucarela", "mozarela", "mozzarela"),
    "portuguesa": ("portuga",),
    "marguerita": ("margarita", "margherita"),
    # Açaí
    "acai": ("assai",),
}

_NOT_KEYWORDS = BUILTIN_IGNORED_WORDS | ADDITION_TRIGGERS | REMOVAL_TRIGGERS


def _word_pattern(key: str) -> str:
    return rf"(?<!\S){re.escape(key)}(?!\S)"


def _replace_word(text: str, key: str, value: str) -> str:
    return re.sub(_word_pattern(key), value, text, count=1)


def generate_synonyms(text: str) -> List[str]:
    """Variações do nome trocando termos conhecidos ("x bacon" -> "xis bacon")."""
    synonyms: List[str] = []
    matched: List[str] = []
    for key, values in SYNONYM_MAP.items():
        if not re.search(_word_pattern(key), text):
            continue
        # "coca" dentro de "coca cola" já foi tratado pela chave maior
        if any(re.search(_word_pattern(key), longer) for longer in matched):
            continue
        matched.append(key)
        for value in values:
            synonym = normalize_phrase(_replace_word(text, key, value))
            words = synonym.split(" ")
            if any(a == b for a, b in zip(words, words[1:])):
                continue
            if synonym and synonym != text and synonym not in synonyms:
                synonyms.append(synonym)
    return synonyms


def generate_auto_mappings(product_name: str) -> List[str]:
    """
    Palavras-chave para um produto: nome completo, palavras soltas,
    pares de palavras vizinhas e sinônimos.

    Ex: "X-Bacon" -> ["x bacon", "bacon", "xis bacon", "x baicon", "x becon"]
    """
    base = normalize_phrase(product_name)
    if not base:
        return []

    mappings: List[str] = [base]
    words = base.split(" ")

    for word in words:
        if len(word) >= MIN_KEYWORD_LENGTH and word not in _NOT_KEYWORDS and not word.isdigit():
            if word not in mappings:
                mappings.append(word)

    for first, second in zip(words, words[1:]):
        combo = f"{first} {second}"
        if first in _NOT_KEYWORDS or second in _NOT_KEYWORDS:
            continue
        if combo not in mappings:
            mappings.append(combo)

    for synonym in generate_synonyms(base):
        if synonym not in mappings:
            mappings.append(synonym)

    return mappings
