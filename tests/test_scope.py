"""
Tests for recipient scope precedence and SQL rendering.
"""

from fleet_notify.services.scope import (
    LIST_RULES,
    MARK_RULES,
    ScopeFilter,
    ScopeQuery,
    list_filter,
    mark_filter,
    room_key,
)

GLOBAL_CLAUSE = "(recipient_type IS NULL AND recipient_id IS NULL)"


class TestListRules:
    """Precedence: driverId > investorId > recipientType+Id > admin"""

    def test_rule_order_is_explicit(self):
        assert [r.name for r in LIST_RULES] == ["driver", "investor", "recipient", "admin"]

    def test_driver_wins_over_everything(self):
        f = list_filter(ScopeQuery(driver_id="D1", investor_id="I1", recipient_type="investor", recipient_id="I2"))
        assert f == ScopeFilter.exact("driver", "D1")

    def test_investor_wins_over_explicit_scope(self):
        f = list_filter(ScopeQuery(investor_id="I1", recipient_type="driver", recipient_id="D9"))
        assert f == ScopeFilter.exact("investor", "I1")

    def test_explicit_pair(self):
        f = list_filter(ScopeQuery(recipient_type="driver", recipient_id="5"))
        assert f == ScopeFilter.exact("driver", "5")

    def test_type_without_id_is_admin_view(self):
        assert list_filter(ScopeQuery(recipient_type="driver")) == ScopeFilter.everything()

    def test_no_scope_is_admin_view(self):
        f = list_filter(ScopeQuery())
        assert f.kind == "all"
        assert f.to_sql() == ("TRUE", [])

    def test_every_scoped_listing_includes_global(self):
        queries = [
            ScopeQuery(driver_id="D1"),
            ScopeQuery(investor_id="I1"),
            ScopeQuery(recipient_type="fleet_manager", recipient_id="M3"),
        ]
        for q in queries:
            where, _ = list_filter(q).to_sql()
            assert GLOBAL_CLAUSE in where

    def test_scoped_listing_matches_exact_pair_only(self):
        where, params = list_filter(ScopeQuery(driver_id="D1")).to_sql()
        assert "(recipient_type = $1 AND recipient_id = $2)" in where
        assert params == ["driver", "D1"]


class TestMarkRules:
    def test_rule_order_is_explicit(self):
        assert [r.name for r in MARK_RULES] == ["recipient", "recipient_type", "admin"]

    def test_pair_plus_global(self):
        where, params = mark_filter("driver", "5").to_sql()
        assert params == ["driver", "5"]
        assert GLOBAL_CLAUSE in where

    def test_type_only_matches_type_or_untyped(self):
        where, params = mark_filter("investor").to_sql()
        assert where == "(recipient_type = $1 OR recipient_type IS NULL)"
        assert params == ["investor"]

    def test_nothing_matches_everything(self):
        assert mark_filter().to_sql() == ("TRUE", [])

    def test_id_without_type_matches_everything(self):
        assert mark_filter(None, "5") == ScopeFilter.everything()


class TestSqlRendering:
    def test_parameter_numbering_offset(self):
        where, params = ScopeFilter.exact("driver", "D1").to_sql(first_param=3)
        assert "$3" in where and "$4" in where
        assert "$1" not in where
        assert params == ["driver", "D1"]

    def test_numeric_ids_are_compared_as_strings(self):
        _, params = ScopeFilter.exact("driver", 42).to_sql()
        assert params == ["driver", "42"]


class TestRoomKey:
    def test_room_for_full_scope(self):
        assert room_key("investor", "123") == "investor:123"

    def test_no_room_for_partial_or_global_scope(self):
        assert room_key(None, None) is None
        assert room_key("driver", None) is None
        assert room_key(None, "D1") is None


def _matches(f: ScopeFilter, row: dict) -> bool:
    """Evaluate a ScopeFilter on a row the way its SQL fragment does"""
    if f.kind == "exact":
        return (
            (row["recipient_type"] == f.recipient_type and row["recipient_id"] == f.recipient_id)
            or (row["recipient_type"] is None and row["recipient_id"] is None)
        )
    if f.kind == "type":
        return row["recipient_type"] == f.recipient_type or row["recipient_type"] is None
    return True


def _rows():
    return [
        {"id": "global", "recipient_type": None, "recipient_id": None, "read": False},
        {"id": "d1", "recipient_type": "driver", "recipient_id": "D1", "read": False},
        {"id": "d2", "recipient_type": "driver", "recipient_id": "D2", "read": False},
        {"id": "d5-read", "recipient_type": "driver", "recipient_id": "5", "read": True},
        {"id": "d5", "recipient_type": "driver", "recipient_id": "5", "read": False},
        {"id": "i1", "recipient_type": "investor", "recipient_id": "I1", "read": False},
        {"id": "untyped", "recipient_type": None, "recipient_id": "X1", "read": False},
    ]


def _visible_ids(f: ScopeFilter, rows) -> set:
    return {r["id"] for r in rows if _matches(f, r)}


class TestVisibilityOverRows:
    def test_global_visible_to_every_listing(self):
        rows = _rows()
        for q in [
            ScopeQuery(),
            ScopeQuery(driver_id="D1"),
            ScopeQuery(investor_id="I1"),
            ScopeQuery(recipient_type="investor", recipient_id="nobody"),
        ]:
            assert "global" in _visible_ids(list_filter(q), rows)

    def test_driver_sees_own_and_global_only(self):
        assert _visible_ids(list_filter(ScopeQuery(driver_id="D1")), _rows()) == {"global", "d1"}

    def test_scoped_rows_hidden_from_other_scopes(self):
        rows = _rows()
        assert "d1" not in _visible_ids(list_filter(ScopeQuery(driver_id="D2")), rows)
        assert "d1" not in _visible_ids(list_filter(ScopeQuery(investor_id="D1")), rows)
        assert "i1" not in _visible_ids(list_filter(ScopeQuery(recipient_type="driver", recipient_id="D1")), rows)

    def test_admin_view_sees_everything(self):
        rows = _rows()
        assert _visible_ids(list_filter(ScopeQuery()), rows) == {r["id"] for r in rows}

    def test_type_only_mark_scope(self):
        assert _visible_ids(mark_filter("investor"), _rows()) == {"global", "i1", "untyped"}

    def test_unread_count_counts_visible_unread(self):
        rows = _rows()
        f = mark_filter("driver", "5")
        unread = [r for r in rows if _matches(f, r) and not r["read"]]
        assert {r["id"] for r in unread} == {"global", "d5"}

    def test_mark_all_then_count_is_zero(self):
        rows = _rows()
        f = mark_filter("driver", "5")

        matched = [r for r in rows if _matches(f, r)]
        modified = [r for r in matched if not r["read"]]
        for r in matched:
            r["read"] = True

        assert (len(matched), len(modified)) == (3, 2)
        assert sum(1 for r in rows if _matches(f, r) and not r["read"]) == 0
        # other scopes are untouched
        assert next(r for r in rows if r["id"] == "d1")["read"] is False
        assert next(r for r in rows if r["id"] == "i1")["read"] is False
