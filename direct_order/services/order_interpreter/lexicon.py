"""Léxico por tenant: palavras ignoradas, sinônimos e mapeamentos de palavra-chave."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from direct_order.services.order_interpreter.normalizer import normalize_phrase

# Saudações, cortesias, verbos de pedido, artigos e preposições.
# Nunca bastam sozinhas para casar um produto.
BUILTIN_IGNORED_WORDS: FrozenSet[str] = frozenset({
    "bom", "boa", "dia", "tarde", "noite", "oi", "ola", "opa", "eae", "eai",
    "obrigado", "obrigada", "vlw", "valeu", "muito", "obg", "tudo", "bem",
    "quero", "queria", "gostaria", "pedir", "por", "favor", "pfv",
    "me", "ve", "manda", "envia", "traz", "traga", "preciso",
    "o", "a", "os", "as", "um", "uma", "uns", "umas",
    "de", "do", "da", "dos", "das", "pra", "para", "pro",
    "no", "na", "nos", "nas", "pela", "pelo", "e",
    "esse", "essa", "isso", "dele", "dela", "deles", "delas",
})


@dataclass(frozen=True)
class Lexicon:
    """
    Snapshot imutável do léxico usado em uma análise.

    Attributes:
        ignored_words: palavras embutidas + palavras extras do tenant
        synonyms: frase normalizada -> id do produto
        keyword_mappings: frase normalizada -> id do produto
    """

    ignored_words: FrozenSet[str] = BUILTIN_IGNORED_WORDS
    synonyms: Mapping[str, str] = field(default_factory=dict)
    keyword_mappings: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "Lexicon":
        return cls()

    @classmethod
    def build(
        cls,
        ignored_words: Iterable[str] = (),
        synonyms: Optional[Mapping[str, object]] = None,
        keyword_mappings: Optional[Mapping[str, object]] = None,
    ) -> "Lexicon":
        """Normaliza as chaves e soma as palavras ignoradas às embutidas."""
        extra = {normalize_phrase(word) for word in ignored_words}
        extra.discard("")
        return cls(
            ignored_words=BUILTIN_IGNORED_WORDS | frozenset(extra),
            synonyms=_normalize_table(synonyms),
            keyword_mappings=_normalize_table(keyword_mappings),
        )

    def phrase_starts(self) -> FrozenSet[str]:
        """Primeira palavra de cada sinônimo/mapeamento."""
        starts = set()
        for phrase in list(self.synonyms) + list(self.keyword_mappings):
            starts.add(phrase.split(" ", 1)[0])
        return frozenset(starts)


def _normalize_table(table: Optional[Mapping[str, object]]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for phrase, product_id in (table or {}).items():
        key = normalize_phrase(phrase)
        if key and product_id is not None:
            result[key] = str(product_id)
    return result
