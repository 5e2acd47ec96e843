"""
Upstream customer record mapping.

Pure helpers that derive customer fields from one record of the SGP
customer API: login key, name split, contract state, dates and the
snapshot stored by the sync.

Dependencies: None (pure domain layer)
System role: Translation between upstream records and customer rows
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Any

PLACEHOLDER_EMAIL_DOMAIN = "sgp.local"
ACTIVE_CONTRACT_STATUS = "ATIVO"
CARD_ID_ALPHABET = string.ascii_uppercase + string.digits
CARD_ID_LENGTH = 6

_DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d", "%d/%m/%Y")


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def cpf_cnpj_of(record: dict[str, Any]) -> str | None:
    return _clean(record.get("cpfcnpj"))


def login_email(record: dict[str, Any]) -> str | None:
    """
    Natural key used as the customer login.

    The upstream email when present, otherwise a placeholder built from
    the tax id (``<cpfcnpj>@sgp.local``). None when the record has neither.
    """
    email = _clean(record.get("email"))
    if email:
        return email
    cpf_cnpj = cpf_cnpj_of(record)
    if cpf_cnpj:
        return f"{cpf_cnpj}@{PLACEHOLDER_EMAIL_DOMAIN}"
    return None


def record_label(record: dict[str, Any]) -> str:
    """Short identifying label used in per-record error details."""
    return _clean(record.get("nome")) or "without name"


def split_name(full_name: str | None, default: str = "Customer") -> tuple[str, str]:
    """
    Split a full name into (first name, remaining names).

    >>> split_name("Maria da Silva")
    ('Maria', 'da Silva')
    """
    name = _clean(full_name)
    if not name:
        return default, ""
    first, _, rest = name.partition(" ")
    return first, rest.strip()


def contracts_of(record: dict[str, Any]) -> list[dict[str, Any]]:
    contracts = record.get("contratos") or []
    return [c for c in contracts if isinstance(c, dict)]


def is_active_contract(contract: dict[str, Any]) -> bool:
    return str(contract.get("status") or "").strip().upper() == ACTIVE_CONTRACT_STATUS


def has_active_contract(record: dict[str, Any]) -> bool:
    return any(is_active_contract(c) for c in contracts_of(record))


def parse_upstream_date(value: Any) -> datetime | None:
    """
    Parse an upstream date or datetime string into an aware UTC datetime.

    Returns None for empty or unparseable values.
    """
    text = _clean(value)
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def last_active_contract_date(record: dict[str, Any]) -> datetime | None:
    """Registration date of the most recent active contract."""
    dates = [
        parse_upstream_date(c.get("dataCadastro"))
        for c in contracts_of(record)
        if is_active_contract(c)
    ]
    dates = [d for d in dates if d is not None]
    return max(dates) if dates else None


def last_activity_date(record: dict[str, Any]) -> datetime | None:
    """Registration date of the most recent contract of any status."""
    dates = [parse_upstream_date(c.get("dataCadastro")) for c in contracts_of(record)]
    dates = [d for d in dates if d is not None]
    return max(dates) if dates else None


def upstream_snapshot(record: dict[str, Any], synced_at: datetime) -> dict[str, Any]:
    """JSON-safe copy of the fields kept from an upstream record."""
    return {
        "id": record.get("id"),
        "nome": record.get("nome"),
        "cpfcnpj": record.get("cpfcnpj"),
        "email": record.get("email"),
        "dataCadastro": record.get("dataCadastro"),
        "endereco": record.get("endereco"),
        "contratos": [
            {
                "contrato": c.get("contrato"),
                "status": c.get("status"),
                "dataCadastro": c.get("dataCadastro"),
                "servicos": c.get("servicos") or [],
            }
            for c in contracts_of(record)
        ],
        "synced_at": synced_at.isoformat(),
    }


def generate_card_id() -> str:
    return "".join(secrets.choice(CARD_ID_ALPHABET) for _ in range(CARD_ID_LENGTH))
