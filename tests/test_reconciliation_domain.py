"""
Tests for `domain/carrier.py` and `domain/reconciliation.py`.

Covers:
- Protocol normalization (7-digit codes gain a leading zero)
- Carrier effective value precedence (LQ value first)
- ReconciliationLink score rules
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from domain.carrier import CarrierRecord, CarrierStatus, normalize_protocol
from domain.errors import ValidationError
from domain.reconciliation import LinkStatus, MatchType, ReconciliationLink


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1234567", "01234567"),
        (" 1234567 ", "01234567"),
        ("01234567", "01234567"),
        ("123456", "123456"),
        ("ABC1234", "ABC1234"),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_protocol(raw, expected) -> None:
    assert normalize_protocol(raw) == expected


def _carrier(**overrides) -> CarrierRecord:
    fields = dict(
        carrier_record_id=uuid4(),
        carrier_name="Vivo",
        carrier_status=CarrierStatus.APROVADO,
    )
    fields.update(overrides)
    return CarrierRecord(**fields)


def test_effective_value_prefers_lq_value() -> None:
    record = _carrier(value=Decimal("100.00"), value_lq=Decimal("80.00"))

    assert record.effective_value == Decimal("80.00")


def test_effective_value_falls_back_to_nominal_value() -> None:
    assert _carrier(value=Decimal("100.00")).effective_value == Decimal("100.00")
    assert _carrier(value=Decimal("100.00"), value_lq=Decimal("0")).effective_value == Decimal("100.00")
    assert _carrier().effective_value is None


def test_effective_value_is_none_without_a_non_zero_amount() -> None:
    assert _carrier(value=Decimal("0")).effective_value is None
    assert _carrier(value=Decimal("0"), value_lq=Decimal("0.00")).effective_value is None


def _link(**overrides) -> ReconciliationLink:
    fields = dict(
        link_id=uuid4(),
        sale_id=uuid4(),
        carrier_record_id=uuid4(),
        match_type=MatchType.MANUAL,
        score=100,
        status=LinkStatus.CONCILIADO,
        validated_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return ReconciliationLink(**fields)


def test_manual_link_must_score_100() -> None:
    with pytest.raises(ValidationError):
        _link(score=90)


def test_link_score_bounds() -> None:
    with pytest.raises(ValidationError):
        _link(match_type=MatchType.PROTOCOLO, score=101)
    with pytest.raises(ValidationError):
        _link(match_type=MatchType.CPF, score=-1)

    assert _link(match_type=MatchType.TELEFONE, score=60).score == 60


def test_link_is_reconciled_only_when_conciliado() -> None:
    assert _link().is_reconciled
    assert not _link(status=LinkStatus.DIVERGENTE).is_reconciled
    assert not _link(status=LinkStatus.NAO_ENCONTRADO).is_reconciled


def test_link_validated_at_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _link(validated_at=datetime(2024, 3, 1))
