"""Tests for post-fetch authorization filtering."""

import logging

from analytics_cache.application.services.authorization_filter import filter_rows
from analytics_cache.domain.enums import PermissionScope
from analytics_cache.domain.value_objects.core import ColumnMappings
from tests.conftest import make_identity


def _rows() -> list[dict]:
    return [
        {"practice_uid": 114, "provider_uid": 1, "v": 1},
        {"practice_uid": 115, "provider_uid": 2, "v": 2},
        {"practice_uid": 116, "provider_uid": None, "v": 3},
        {"practice_uid": "114", "provider_uid": "1", "v": 4},
        {"provider_uid": 1, "v": 5},
        {"practice_uid": None, "v": 6},
    ]


def test_scope_all_returns_every_row_unchanged() -> None:
    rows = _rows()
    result = filter_rows(rows, make_identity(PermissionScope.ALL))
    assert result == rows
    assert result is not rows


def test_entity_filter_keeps_only_authorized_entities() -> None:
    result = filter_rows(_rows(), make_identity(entity_ids=(114, 116), sub_entity_ids=(1,)))
    assert [r["v"] for r in result] == [1, 3, 4]


def test_missing_entity_is_excluded() -> None:
    result = filter_rows(_rows(), make_identity(entity_ids=(114, 115, 116), sub_entity_ids=(1, 2)))
    assert 5 not in [r["v"] for r in result]
    assert 6 not in [r["v"] for r in result]


def test_sub_entity_must_be_authorized_when_present() -> None:
    result = filter_rows(_rows(), make_identity(PermissionScope.OWN, entity_ids=(114, 115), sub_entity_ids=(2,)))
    assert [r["v"] for r in result] == [2]


def test_input_is_not_mutated() -> None:
    rows = _rows()
    snapshot = [dict(r) for r in rows]
    filter_rows(rows, make_identity(entity_ids=(114,)))
    assert rows == snapshot


def test_custom_columns() -> None:
    rows = [{"org": 1, "doc": None}, {"org": 2, "doc": None}]
    columns = ColumnMappings(entity_field="org", sub_entity_field="doc")
    assert filter_rows(rows, make_identity(entity_ids=(2,)), columns) == [{"org": 2, "doc": None}]


def test_empty_result_emits_audit_event(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="analytics_cache.audit"):
        result = filter_rows(_rows(), make_identity(entity_ids=(999,), identity_id="u-42"))
    assert result == []
    audit = [r for r in caplog.records if r.name == "analytics_cache.audit"]
    assert len(audit) == 1
    assert "u-42" in audit[0].getMessage()


def test_empty_input_does_not_audit(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="analytics_cache.audit"):
        assert filter_rows([], make_identity(entity_ids=(1,))) == []
    assert not [r for r in caplog.records if r.name == "analytics_cache.audit"]


def test_no_sub_entity_list_leaves_sub_entities_unrestricted() -> None:
    identity = make_identity(PermissionScope.ORGANIZATION, entity_ids=(114, 115))
    result = filter_rows(_rows(), identity)
    assert [r["v"] for r in result] == [1, 2, 4]
