"""Extração de quantidades e reconhecimento de medidas (2l, 600ml, 2 litros)."""

from __future__ import annotations

import re
from typing import AbstractSet, List, Optional, Sequence, Tuple

# Números por extenso (já sem acento)
NUMBER_WORDS = {
    "um": 1, "uma": 1,
    "dois": 2, "duas": 2,
    "tres": 3,
    "quatro": 4,
    "cinco": 5,
    "seis": 6,
    "sete": 7,
    "oito": 8,
    "nove": 9,
    "dez": 10,
    "onze": 11,
    "doze": 12,
}

MAX_QUANTITY = 99

# Unidade -> forma canônica
UNIT_WORDS = {
    "l": "l", "lt": "l", "lts": "l", "litro": "l", "litros": "l",
    "ml": "ml",
    "kg": "kg", "quilo": "kg", "quilos": "kg",
    "g": "g", "gr": "g", "grs": "g", "grama": "g", "gramas": "g",
}

# Sufixos que ficam colados ao número como um único token ("2l", "600ml")
UNIT_SUFFIXES = frozenset({"l", "lt", "lts", "ml", "kg", "g", "gr"})

SIZE_ALIASES = {
    "latinha": "lata",
    "latao": "lata",
}

MULTIPLIER_TOKENS = frozenset({"x"})

_FUSED_SIZE_RE = re.compile(r"^(\d+)(l|lt|lts|ml|kg|g|gr)$")


def parse_number(token: str) -> Optional[int]:
    """Converte '2' ou 'duas' em 2. Retorna None para qualquer outra coisa."""
    if token in NUMBER_WORDS:
        return NUMBER_WORDS[token]
    if token.isdigit():
        value = int(token)
        if 1 <= value <= MAX_QUANTITY:
            return value
    return None


def is_unit_word(token: str) -> bool:
    return token in UNIT_WORDS


def is_size_token(token: str) -> bool:
    """True para medidas coladas ('2l', '350ml') ou palavras de unidade ('litros')."""
    return bool(_FUSED_SIZE_RE.match(token)) or is_unit_word(token)


def quantity_at(tokens: Sequence[str], index: int) -> Optional[int]:
    """Quantidade no índice, desde que o número não faça parte de uma medida."""
    if index < 0 or index >= len(tokens):
        return None
    value = parse_number(tokens[index])
    if value is None:
        return None
    if index + 1 < len(tokens) and is_unit_word(tokens[index + 1]):
        # "2 litros": o número é tamanho, não quantidade
        return None
    return value


def extract_quantity(tokens: Sequence[str]) -> Optional[int]:
    """Primeiro numeral de quantidade da sequência, ignorando medidas."""
    for index in range(len(tokens)):
        value = quantity_at(tokens, index)
        if value is not None:
            return value
    return None


def quantity_before(
    tokens: Sequence[str], start: int, claimed: AbstractSet[int]
) -> Optional[Tuple[int, List[int]]]:
    """
    Procura a quantidade imediatamente antes de `start`.

    Aceita o multiplicador "x" entre número e produto ("2 x galinha").

    Returns:
        tuple: (quantidade, índices consumidos) ou None
    """
    index = start - 1
    used: List[int] = []

    if index >= 0 and tokens[index] in MULTIPLIER_TOKENS and index not in claimed:
        used.append(index)
        index -= 1

    if index < 0 or index in claimed:
        return None

    value = quantity_at(tokens, index)
    if value is None:
        return None

    used.append(index)
    return value, used


def canonical_size_tokens(tokens: Sequence[str]) -> List[str]:
    """
    Reescreve medidas para uma forma única.

    Ex: ["coca", "2", "litros"] -> ["coca", "2l"]; ["600", "ml"] -> ["600ml"];
    ["latinha"] -> ["lata"].
    """
    result: List[str] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        nxt = tokens[index + 1] if index + 1 < len(tokens) else ""

        fused = _FUSED_SIZE_RE.match(token)
        if fused:
            result.append(fused.group(1) + UNIT_WORDS[fused.group(2)])
        elif token.isdigit() and nxt in UNIT_WORDS:
            result.append(token + UNIT_WORDS[nxt])
            index += 1
        else:
            result.append(SIZE_ALIASES.get(token, token))
        index += 1
    return result
