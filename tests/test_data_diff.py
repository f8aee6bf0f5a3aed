import pytest

from dbcompare.core.data_diff import (
    changed_column_indices,
    compute_data_diff,
    primary_key_indices,
)
from dbcompare.core.diff_models import RowStatus
from dbcompare.core.models import ColumnInfo

COLUMNS = ["id", "name"]


def _statuses(result):
    return {r.key_values: r.status for r in result.rows}


def test_added_removed_changed():
    result = compute_data_diff(
        [(1, "a"), (2, "b")],
        [(2, "b2"), (3, "c")],
        [0],
        COLUMNS,
    )

    assert _statuses(result) == {
        ("1",): RowStatus.REMOVED,
        ("2",): RowStatus.CHANGED,
        ("3",): RowStatus.ADDED,
    }
    s = result.summary
    assert (s.added, s.removed, s.changed, s.identical) == (1, 1, 1, 0)
    assert result.key_columns == ["id"]


def test_changed_row_lists_changed_columns():
    result = compute_data_diff([(2, "b", 7)], [(2, "b2", 7)], [0], ["id", "name", "n"])

    assert result.rows[0].changed_columns == (1,)


def test_identical_inputs():
    rows = [(1, "a"), (2, None)]
    result = compute_data_diff(rows, list(rows), [0], COLUMNS)

    assert all(r.status is RowStatus.IDENTICAL for r in result.rows)
    assert result.summary.identical == 2


def test_null_vs_empty_string_differs():
    result = compute_data_diff([(1, None)], [(1, "")], [0], COLUMNS)

    assert result.rows[0].status is RowStatus.CHANGED


def test_result_order_is_source_then_target_only():
    result = compute_data_diff([(2, "b"), (1, "a")], [(9, "z"), (1, "a")], [0], COLUMNS)

    assert [r.key_values for r in result.rows] == [("2",), ("1",), ("9",)]


def test_composite_keys():
    result = compute_data_diff(
        [(1, "x", 10), (1, "y", 20)],
        [(1, "y", 21)],
        [0, 1],
        ["a", "b", "v"],
    )

    assert _statuses(result) == {
        ("1", "x"): RowStatus.REMOVED,
        ("1", "y"): RowStatus.CHANGED,
    }


def test_row_limit_truncates_each_side():
    source = [(i, "v") for i in range(10)]
    result = compute_data_diff(source, source, [0], COLUMNS, row_limit=4)

    assert len(result.rows) == 4
    assert result.truncated is True


def test_requires_key_columns():
    with pytest.raises(ValueError, match="primary-key"):
        compute_data_diff([(1,)], [(1,)], [], ["id"])


def test_primary_key_indices_follow_column_names():
    columns = [
        ColumnInfo("name", "text"),
        ColumnInfo("id", "int", is_primary_key=True),
    ]

    assert primary_key_indices(columns, ["id", "name"]) == [0]
    assert primary_key_indices(columns[:1], ["id", "name"]) == []


def test_missing_trailing_column_counts_as_changed():
    assert changed_column_indices((1, "a"), (1, "a", None)) == [2]


def test_duplicate_keys_yield_one_entry_each():
    result = compute_data_diff(
        [(1, "a"), (1, "a-dup")],
        [(1, "a"), (3, "c"), (3, "c-dup")],
        [0],
        COLUMNS,
    )

    assert [(r.key_values, r.status) for r in result.rows] == [
        (("1",), RowStatus.IDENTICAL),
        (("3",), RowStatus.ADDED),
    ]
    assert result.rows[1].target_row == (3, "c")


def test_short_row_key_reads_as_null():
    result = compute_data_diff([(1,)], [(1, "a")], [0, 1], COLUMNS)

    assert [r.key_values for r in result.rows] == [("1", "<NULL>"), ("1", "a")]
    assert [r.status for r in result.rows] == [RowStatus.REMOVED, RowStatus.ADDED]
