from __future__ import annotations

from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import text


def fetch_keyword_mappings(db, tenant_id: str) -> List[Dict[str, Any]]:
    sql = text(
        """
        SELECT keyword, product_id
        FROM product_mappings
        WHERE tenant_id = :tenant_id
        """
    )
    result = db.execute(sql, {"tenant_id": tenant_id})
    return result.mappings().all()


def fetch_mappings_by_product(db, tenant_id: str, product_id: str) -> List[str]:
    sql = text(
        """
        SELECT keyword
        FROM product_mappings
        WHERE tenant_id = :tenant_id
          AND product_id = :product_id
        ORDER BY keyword
        """
    )
    rows = db.execute(sql, {"tenant_id": tenant_id, "product_id": str(product_id)}).mappings().all()
    return [row["keyword"] for row in rows]


def upsert_keyword_mapping(db, tenant_id: str, keyword: str, product_id: str) -> None:
    sql = text(
        """
        INSERT INTO product_mappings (id, tenant_id, keyword, product_id)
        VALUES (:id, :tenant_id, :keyword, :product_id)
        ON CONFLICT (tenant_id, keyword)
        DO UPDATE SET product_id = excluded.product_id
        """
    )
    db.execute(
        sql,
        {
            "id": str(uuid.uuid4()),
            "tenant_id": tenant_id,
            "keyword": keyword,
            "product_id": str(product_id),
        },
    )
    db.commit()


def delete_keyword_mapping(db, tenant_id: str, keyword: str) -> int:
    sql = text(
        """
        DELETE FROM product_mappings
        WHERE tenant_id = :tenant_id
          AND keyword = :keyword
        """
    )
    result = db.execute(sql, {"tenant_id": tenant_id, "keyword": keyword})
    db.commit()
    return result.rowcount or 0


def fetch_synonyms(db, tenant_id: str) -> List[Dict[str, Any]]:
    sql = text(
        """
        SELECT synonym, product_id
        FROM synonyms
        WHERE tenant_id = :tenant_id
          AND is_active = 1
        """
    )
    result = db.execute(sql, {"tenant_id": tenant_id})
    return result.mappings().all()


def upsert_synonym(db, tenant_id: str, synonym: str, product_id: str, source: str = "manual") -> None:
    sql = text(
        """
        INSERT INTO synonyms (id, tenant_id, synonym, product_id, source, is_active)
        VALUES (:id, :tenant_id, :synonym, :product_id, :source, 1)
        ON CONFLICT (tenant_id, synonym)
        DO UPDATE SET product_id = excluded.product_id,
                      source = excluded.source,
                      is_active = 1
        """
    )
    db.execute(
        sql,
        {
            "id": str(uuid.uuid4()),
            "tenant_id": tenant_id,
            "synonym": synonym,
            "product_id": str(product_id),
            "source": source,
        },
    )
    db.commit()


def deactivate_synonym(db, tenant_id: str, synonym: str) -> int:
    sql = text(
        """
        UPDATE synonyms
        SET is_active = 0
        WHERE tenant_id = :tenant_id
          AND synonym = :synonym
        """
    )
    result = db.execute(sql, {"tenant_id": tenant_id, "synonym": synonym})
    db.commit()
    return result.rowcount or 0


def fetch_ignored_words(db, tenant_id: str) -> List[str]:
    sql = text(
        """
        SELECT word
        FROM ignored_words
        WHERE tenant_id = :tenant_id
          AND is_active = 1
        """
    )
    rows = db.execute(sql, {"tenant_id": tenant_id}).mappings().all()
    return [row["word"] for row in rows]


def upsert_ignored_word(db, tenant_id: str, word: str, reason: Optional[str] = None) -> None:
    sql = text(
        """
        INSERT INTO ignored_words (id, tenant_id, word, reason, is_active)
        VALUES (:id, :tenant_id, :word, :reason, 1)
        ON CONFLICT (tenant_id, word)
        DO UPDATE SET reason = COALESCE(excluded.reason, ignored_words.reason),
                      is_active = 1
        """
    )
    db.execute(
        sql,
        {
            "id": str(uuid.uuid4()),
            "tenant_id": tenant_id,
            "word": word,
            "reason": reason,
        },
    )
    db.commit()


def deactivate_ignored_word(db, tenant_id: str, word: str) -> int:
    sql = text(
        """
        UPDATE ignored_words
        SET is_active = 0
        WHERE tenant_id = :tenant_id
          AND word = :word
        """
    )
    result = db.execute(sql, {"tenant_id": tenant_id, "word": word})
    db.commit()
    return result.rowcount or 0
