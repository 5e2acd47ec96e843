"""
Tests for upstream record mapping helpers.

System role: Verification of login key, name and contract derivation
"""

from datetime import datetime, timezone

from customer_sync.core.customer_mapping import (
    CARD_ID_ALPHABET,
    generate_card_id,
    has_active_contract,
    last_active_contract_date,
    last_activity_date,
    login_email,
    parse_upstream_date,
    record_label,
    split_name,
    upstream_snapshot,
)


class TestLoginEmail:
    def test_prefers_upstream_email(self) -> None:
        assert login_email({"email": " ana@example.com ", "cpfcnpj": "123"}) == "ana@example.com"

    def test_falls_back_to_tax_id_placeholder(self) -> None:
        assert login_email({"email": "", "cpfcnpj": "12345678901"}) == "12345678901@sgp.local"

    def test_none_without_email_or_tax_id(self) -> None:
        assert login_email({"nome": "Sem Chave", "email": None, "cpfcnpj": "  "}) is None


class TestNames:
    def test_split_name_keeps_remaining_names_together(self) -> None:
        assert split_name("Maria da Silva") == ("Maria", "da Silva")

    def test_split_single_name(self) -> None:
        assert split_name("Maria") == ("Maria", "")

    def test_split_missing_name_uses_default(self) -> None:
        assert split_name(None) == ("Customer", "")

    def test_record_label_without_name(self) -> None:
        assert record_label({"nome": ""}) == "without name"


class TestContracts:
    record = {
        "contratos": [
            {"status": "ATIVO", "dataCadastro": "2023-05-01 10:00:00"},
            {"status": "CANCELADO", "dataCadastro": "2024-02-01"},
            {"status": "ativo", "dataCadastro": "2023-09-15"},
            "not-a-contract",
        ]
    }

    def test_has_active_contract_is_case_insensitive(self) -> None:
        assert has_active_contract({"contratos": [{"status": "ativo"}]})
        assert not has_active_contract({"contratos": [{"status": "SUSPENSO"}]})
        assert not has_active_contract({})

    def test_last_active_contract_date(self) -> None:
        assert last_active_contract_date(self.record) == datetime(2023, 9, 15, tzinfo=timezone.utc)

    def test_last_activity_date_considers_every_contract(self) -> None:
        assert last_activity_date(self.record) == datetime(2024, 2, 1, tzinfo=timezone.utc)


class TestParseUpstreamDate:
    def test_brazilian_format(self) -> None:
        assert parse_upstream_date("31/12/2023") == datetime(2023, 12, 31, tzinfo=timezone.utc)

    def test_iso_with_offset_is_kept_aware(self) -> None:
        parsed = parse_upstream_date("2024-03-01T12:00:00+00:00")
        assert parsed == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    def test_garbage_returns_none(self) -> None:
        assert parse_upstream_date("yesterday") is None
        assert parse_upstream_date("") is None


def test_upstream_snapshot_is_json_safe() -> None:
    synced_at = datetime(2024, 6, 1, tzinfo=timezone.utc)
    snapshot = upstream_snapshot(
        {"id": 7, "nome": "Ana", "contratos": [{"contrato": 1, "status": "ATIVO"}], "extra": object()},
        synced_at,
    )

    assert "extra" not in snapshot
    assert snapshot["contratos"] == [
        {"contrato": 1, "status": "ATIVO", "dataCadastro": None, "servicos": []}
    ]
    assert snapshot["synced_at"] == "2024-06-01T00:00:00+00:00"


def test_generate_card_id() -> None:
    card_id = generate_card_id()
    assert len(card_id) == 6
    assert set(card_id) <= set(CARD_ID_ALPHABET)
