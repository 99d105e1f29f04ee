import numpy as np
import pytest
from gridsim_tools import Trial, FieldKind
from gridsim_tools.config.grid import GridCell
from gridsim_tools.errors import InvalidReturnShapeError, InconsistentReturnShapeError

import trials


def cell(**params):
    return GridCell(params=params, coords=(0,) * len(params))


def test_run_returns_record_in_field_order():
    record = Trial.run(trials.deterministic, cell(n=100, loc=1))
    assert record.fields == {"total": 111, "big": True}
    assert record.schema() == (("total", FieldKind.NUMBER), ("big", FieldKind.BOOL))


def test_namedtuple_return_is_accepted():
    record = Trial.run(trials.as_point, cell(n=4))
    assert record.fields == {"x": 4, "y": 2.0}


def test_numpy_scalars_are_accepted():
    record = Trial.normalize({"a": np.float64(1.5), "b": np.bool_(True)}, cell(n=1))
    assert record.schema() == (("a", FieldKind.NUMBER), ("b", FieldKind.BOOL))


def test_non_mapping_return_is_rejected():
    with pytest.raises(InvalidReturnShapeError) as e:
        Trial.run(trials.not_a_mapping, cell(n=3))
    assert e.value.ctx["params"] == {"n": 3}


@pytest.mark.parametrize("out", [{}, {"a": [1, 2]}, {"a": None}, {1: 2.0}])
def test_malformed_mappings_are_rejected(out):
    with pytest.raises(InvalidReturnShapeError):
        Trial.normalize(out, cell(n=1))


def test_int_and_float_share_a_kind():
    first = Trial.normalize({"a": 1}, cell(n=1))
    second = Trial.normalize({"a": 0.5}, cell(n=2))
    second.check_schema(first.schema(), cell(n=2), rep=0)


def test_schema_mismatch_names_field():
    first = Trial.normalize({"a": 1}, cell(n=1))
    second = Trial.normalize({"a": "one"}, cell(n=2))
    with pytest.raises(InconsistentReturnShapeError) as e:
        second.check_schema(first.schema(), cell(n=2), rep=3)
    assert e.value.ctx["field"] == "a"
    assert e.value.ctx["rep"] == 3


def test_schema_ignores_field_order():
    first = Trial.normalize({"a": 1, "b": True}, cell(n=1))
    second = Trial.normalize({"b": False, "a": 2.5}, cell(n=2))
    second.check_schema(first.schema(), cell(n=2), rep=0)


def test_schema_kind_checked_by_name():
    first = Trial.normalize({"a": 1, "b": True}, cell(n=1))
    second = Trial.normalize({"b": 1, "a": 2}, cell(n=2))
    with pytest.raises(InconsistentReturnShapeError) as e:
        second.check_schema(first.schema(), cell(n=2), rep=0)
    assert e.value.ctx["field"] == "b"
