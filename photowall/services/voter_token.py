"""Клиентский токен голосующего: создаётся один раз и хранится в файле."""
import logging
import secrets
from pathlib import Path

from photowall.config import settings

logger = logging.getLogger(__name__)


def new_voter_token() -> str:
    return secrets.token_hex(13)


def load_or_create_voter_token(path: Path | None = None) -> str:
    """Читает токен из файла; если файла нет или он пуст: генерирует и сохраняет новый."""
    p = path if path is not None else settings.get_voter_token_path()
    if p.exists():
        token = p.read_text(encoding="utf-8").strip()
        if token:
            return token
    token = new_voter_token()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(token, encoding="utf-8")
    logger.info("Created voter token at %s", p)
    return token
