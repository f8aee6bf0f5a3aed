import pytest

from dbcompare.core.dialects import get_dialect
from dbcompare.core.visibility import SchemaVisibilityFilter

KNOWN = ["public", "sales", "hr"]


def test_all_visible_by_default():
    f = SchemaVisibilityFilter()

    assert f.visible("c1") is None
    assert f.filter("c1", KNOWN) == KNOWN


def test_hiding_from_all_switches_to_complement():
    f = SchemaVisibilityFilter()

    assert f.toggle("c1", "sales", KNOWN) is True
    assert f.visible("c1") == ["public", "hr"]
    assert f.is_visible("c1", "sales") is False


def test_hiding_only_visible_schema_is_noop():
    f = SchemaVisibilityFilter()
    f.set_visible("c1", ["hr"])

    assert f.toggle("c1", "hr", KNOWN) is False
    assert f.visible("c1") == ["hr"]


def test_single_known_schema_cannot_be_hidden():
    f = SchemaVisibilityFilter()

    assert f.toggle("c1", "public", ["public"]) is False
    assert f.visible("c1") is None


def test_showing_last_hidden_schema_collapses_to_all():
    f = SchemaVisibilityFilter()
    f.toggle("c1", "sales", KNOWN)

    assert f.toggle("c1", "sales", KNOWN) is True
    assert f.visible("c1") is None


def test_showing_one_of_several_hidden_appends():
    f = SchemaVisibilityFilter()
    f.set_visible("c1", ["public"])

    f.toggle("c1", "hr", KNOWN)

    assert f.visible("c1") == ["public", "hr"]


def test_set_visible_rejects_empty():
    f = SchemaVisibilityFilter()
    with pytest.raises(ValueError):
        f.set_visible("c1", [])


def test_defaults_hide_internal_schemas_once():
    f = SchemaVisibilityFilter()
    pg = get_dialect("postgresql")
    known = ["information_schema", "pg_catalog", "public", "app"]

    assert f.apply_defaults("c1", known, pg) is True
    assert f.visible("c1") == ["public", "app"]

    f.set_visible("c1", None)
    assert f.apply_defaults("c1", known, pg) is False
    assert f.visible("c1") is None


def test_active_schema_prefers_first_visible_then_dialect_default():
    f = SchemaVisibilityFilter()
    pg = get_dialect("postgresql")
    mysql = get_dialect("mysql")

    assert f.active_schema("c1", pg, KNOWN) == "public"
    assert f.active_schema("c1", mysql, ["shop", "crm"]) == "shop"

    f.set_visible("c1", ["hr"])
    assert f.active_schema("c1", pg, KNOWN) == "hr"


def test_clear_forgets_state():
    f = SchemaVisibilityFilter()
    f.set_visible("c1", ["hr"])
    f.clear("c1")

    assert f.visible("c1") is None
    assert f.apply_defaults("c1", ["mysql", "shop"], get_dialect("mysql")) is True
