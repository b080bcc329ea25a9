from __future__ import annotations

import argparse
import json
from typing import Any, Dict, List

from direct_order.db.session import get_engine, init_db
from direct_order.logging_config import init_logging
from direct_order.services.lexicon_service import LexiconService
from direct_order.services.order_interpreter.models import Menu
from direct_order.services.order_interpreter.normalizer import split_segments
from direct_order.services.order_interpreter.service import OrderInterpreterService, make_starts_item
from direct_order.settings import settings
from direct_order.utils.fingerprints import calcular_total_pedido


def _load_case(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _message_text(msg: Any) -> str:
    if isinstance(msg, dict):
        return (msg.get("text") or "").strip()
    return str(msg or "").strip()


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay de mensagens contra o interpretador de pedidos.")
    parser.add_argument("--case", required=True, help="Caminho do arquivo JSON com cardápio e mensagens.")
    parser.add_argument("--tenant", default=None, help="Tenant para carregar o léxico do banco (DATABASE_URL).")
    parser.add_argument("--init-db", action="store_true", help="Cria as tabelas do léxico antes do replay.")
    parser.add_argument("--segments", action="store_true", help="Mostra também os segmentos de cada mensagem.")
    parser.add_argument("--log-level", default=None, help="Sobrescreve LOG_LEVEL.")

    args = parser.parse_args()
    init_logging(args.log_level or settings.log_level)

    case = _load_case(args.case)
    menu = Menu.from_dicts(case.get("products") or [], case.get("addons") or [])
    messages: List[Any] = case.get("messages") or []
    if not messages:
        raise SystemExit("Nenhuma mensagem encontrada no caso.")

    if args.init_db:
        init_db(get_engine())

    lexicon_service = LexiconService() if args.tenant else None
    service = OrderInterpreterService(lexicon_service=lexicon_service)
    starts_item = make_starts_item(menu, service.load_lexicon(args.tenant))

    total = len(messages)
    for idx, msg in enumerate(messages, start=1):
        text = _message_text(msg)
        if not text:
            continue

        actions = service.analyze_message(text, menu, tenant_id=args.tenant)
        line: Dict[str, Any] = {
            "step": f"{idx}/{total}",
            "message": text,
            "actions": [a.to_dict() for a in actions],
            "total": calcular_total_pedido(actions),
        }
        if args.segments:
            line["segments"] = split_segments(text, starts_item=starts_item)
        print(json.dumps(line, ensure_ascii=False))

    print("\nReplay finalizado.")


if __name__ == "__main__":
    main()
