from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from direct_order.db import crud
from direct_order.db.session import get_db
from direct_order.services.mapping_service import generate_auto_mappings
from direct_order.services.order_interpreter.lexicon import Lexicon
from direct_order.services.order_interpreter.models import Product
from direct_order.services.order_interpreter.normalizer import normalize_phrase
from direct_order.settings import settings

logger = logging.getLogger(__name__)


class LexiconService:
    """
    Léxico por tenant (mapeamentos, sinônimos e palavras ignoradas) com cache TTL.

    Falha de banco nunca chega ao interpretador: a leitura volta vazia e o
    erro é registrado. Toda escrita normaliza a chave e invalida o cache do tenant.
    """

    def __init__(
        self,
        db_factory=get_db,
        mappings_ttl: Optional[float] = None,
        lexicon_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.db_factory = db_factory
        self.mappings_ttl = settings.mappings_cache_ttl_seconds if mappings_ttl is None else mappings_ttl
        self.lexicon_ttl = settings.lexicon_cache_ttl_seconds if lexicon_ttl is None else lexicon_ttl
        self.clock = clock
        self._mappings_cache: Dict[str, Tuple[float, Dict[str, str]]] = {}
        self._synonyms_cache: Dict[str, Tuple[float, Dict[str, str]]] = {}
        self._ignored_cache: Dict[str, Tuple[float, List[str]]] = {}

    def _cached(self, cache: Dict, tenant_id: str, ttl: float, loader, empty):
        entry = cache.get(tenant_id)
        now = self.clock()
        if entry is not None and now - entry[0] < ttl:
            return entry[1]

        value = loader(tenant_id)
        if value is None:
            # erro de banco: não guarda no cache, tenta de novo na próxima mensagem
            return empty
        cache[tenant_id] = (now, value)
        return value

    def _load_mappings(self, tenant_id: str) -> Optional[Dict[str, str]]:
        try:
            with self.db_factory() as db:
                rows = crud.fetch_keyword_mappings(db, tenant_id)
        except SQLAlchemyError as e:
            logger.warning(f"Erro ao carregar mapeamentos do tenant {tenant_id}: {e}", extra={"tenant_id": tenant_id})
            return None
        return {row["keyword"]: str(row["product_id"]) for row in rows if row["keyword"]}

    def _load_synonyms(self, tenant_id: str) -> Optional[Dict[str, str]]:
        try:
            with self.db_factory() as db:
                rows = crud.fetch_synonyms(db, tenant_id)
        except SQLAlchemyError as e:
            logger.warning(f"Erro ao carregar sinônimos do tenant {tenant_id}: {e}", extra={"tenant_id": tenant_id})
            return None
        return {row["synonym"]: str(row["product_id"]) for row in rows if row["synonym"]}

    def _load_ignored(self, tenant_id: str) -> Optional[List[str]]:
        try:
            with self.db_factory() as db:
                return list(crud.fetch_ignored_words(db, tenant_id))
        except SQLAlchemyError as e:
            logger.warning(f"Erro ao carregar palavras ignoradas do tenant {tenant_id}: {e}", extra={"tenant_id": tenant_id})
            return None

    def load(self, tenant_id: str) -> Lexicon:
        """Snapshot do léxico do tenant para uma análise."""
        mappings = self._cached(self._mappings_cache, tenant_id, self.mappings_ttl, self._load_mappings, {})
        synonyms = self._cached(self._synonyms_cache, tenant_id, self.lexicon_ttl, self._load_synonyms, {})
        ignored = self._cached(self._ignored_cache, tenant_id, self.lexicon_ttl, self._load_ignored, [])
        return Lexicon.build(ignored_words=ignored, synonyms=synonyms, keyword_mappings=mappings)

    def mappings_for_product(self, tenant_id: str, product_id) -> List[str]:
        try:
            with self.db_factory() as db:
                return crud.fetch_mappings_by_product(db, tenant_id, str(product_id))
        except SQLAlchemyError as e:
            logger.error(f"Erro ao buscar mapeamentos do produto {product_id}: {e}", extra={"tenant_id": tenant_id})
            return []

    def clear_cache(self, tenant_id: Optional[str] = None) -> None:
        caches = (self._mappings_cache, self._synonyms_cache, self._ignored_cache)
        for cache in caches:
            if tenant_id is None:
                cache.clear()
            else:
                cache.pop(tenant_id, None)

    def _write(self, tenant_id: str, description: str, operation) -> bool:
        try:
            with self.db_factory() as db:
                operation(db)
        except SQLAlchemyError as e:
            logger.error(f"Erro ao {description}: {e}", extra={"tenant_id": tenant_id})
            return False
        return True

    def add_mapping(self, tenant_id: str, keyword: str, product_id) -> bool:
        key = normalize_phrase(keyword)
        if not key:
            return False
        ok = self._write(
            tenant_id,
            f"salvar mapeamento '{key}'",
            lambda db: crud.upsert_keyword_mapping(db, tenant_id, key, str(product_id)),
        )
        if ok:
            self._mappings_cache.pop(tenant_id, None)
            logger.info(f"Mapeamento '{key}' -> {product_id} salvo", extra={"tenant_id": tenant_id, "matched_keyword": key})
        return ok

    def add_mappings(self, tenant_id: str, keywords: Iterable[str], product_id) -> int:
        """Salva vários mapeamentos para o mesmo produto; retorna quantos foram gravados."""
        saved = 0
        for keyword in keywords:
            if self.add_mapping(tenant_id, keyword, product_id):
                saved += 1
        return saved

    def remove_mapping(self, tenant_id: str, keyword: str) -> bool:
        key = normalize_phrase(keyword)
        if not key:
            return False
        ok = self._write(
            tenant_id,
            f"remover mapeamento '{key}'",
            lambda db: crud.delete_keyword_mapping(db, tenant_id, key),
        )
        if ok:
            self._mappings_cache.pop(tenant_id, None)
        return ok

    def add_synonym(self, tenant_id: str, synonym: str, product_id, source: str = "manual") -> bool:
        key = normalize_phrase(synonym)
        if not key:
            return False
        ok = self._write(
            tenant_id,
            f"salvar sinônimo '{key}'",
            lambda db: crud.upsert_synonym(db, tenant_id, key, str(product_id), source),
        )
        if ok:
            self._synonyms_cache.pop(tenant_id, None)
        return ok

    def remove_synonym(self, tenant_id: str, synonym: str) -> bool:
        key = normalize_phrase(synonym)
        if not key:
            return False
        ok = self._write(
            tenant_id,
            f"desativar sinônimo '{key}'",
            lambda db: crud.deactivate_synonym(db, tenant_id, key),
        )
        if ok:
            self._synonyms_cache.pop(tenant_id, None)
        return ok

    def add_ignored_word(self, tenant_id: str, word: str, reason: Optional[str] = None) -> bool:
        key = normalize_phrase(word)
        if not key:
            return False
        ok = self._write(
            tenant_id,
            f"salvar palavra ignorada '{key}'",
            lambda db: crud.upsert_ignored_word(db, tenant_id, key, reason),
        )
        if ok:
            self._ignored_cache.pop(tenant_id, None)
        return ok

    def remove_ignored_word(self, tenant_id: str, word: str) -> bool:
        key = normalize_phrase(word)
        if not key:
            return False
        ok = self._write(
            tenant_id,
            f"desativar palavra ignorada '{key}'",
            lambda db: crud.deactivate_ignored_word(db, tenant_id, key),
        )
        if ok:
            self._ignored_cache.pop(tenant_id, None)
        return ok

    def seed_product_mappings(self, tenant_id: str, products: Iterable[Product]) -> int:
        """
        Gera mapeamentos automáticos para o cardápio.

        Palavras geradas para mais de um produto ("marmita" em P/M/G) são
        ambíguas e ficam de fora.
        """
        generated: List[Tuple[Product, List[str]]] = []
        counts: Counter = Counter()
        for product in products:
            keywords = sorted(set(generate_auto_mappings(product.name)))
            generated.append((product, keywords))
            counts.update(keywords)

        saved = 0
        for product, keywords in generated:
            unique = [k for k in keywords if counts[k] == 1]
            saved += self.add_mappings(tenant_id, unique, product.id)

        logger.info(f"{saved} mapeamento(s) automático(s) gerado(s)", extra={"tenant_id": tenant_id})
        return saved
