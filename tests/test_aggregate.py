import numpy as np
import pytest
from gridsim_tools.errors import ReducerShapeError
from gridsim_tools.utils.aggregate import aggregate, summarize


def test_mean_removes_repetition_axis():
    raw = np.array([[[True, False, True, True]]])
    summary = aggregate(raw)
    assert summary.shape == (1, 1)
    assert summary[0, 0] == pytest.approx(0.75)


def test_named_reducers():
    raw = np.array([[1.0, 2.0, 3.0, 10.0]])
    assert aggregate(raw, "median")[0] == pytest.approx(2.5)
    assert aggregate(raw, "std")[0] == pytest.approx(np.std(raw[0], ddof=1))


def test_callable_reducer_per_slice():
    raw = np.arange(24, dtype=float).reshape(2, 3, 4)
    summary = aggregate(raw, lambda x: x.max() - x.min())
    assert summary.shape == (2, 3)
    assert np.all(summary == 3.0)


def test_non_scalar_reducer_is_rejected():
    raw = np.zeros((2, 2, 5))
    with pytest.raises(ReducerShapeError) as e:
        aggregate(raw, lambda x: x[:2])
    assert e.value.ctx["index"] == (0, 0)


def test_unknown_reducer_name():
    with pytest.raises(ValueError):
        aggregate(np.zeros((1, 2)), "mode")


def test_summarize_with_overrides(artifact, base):
    summary = summarize(artifact, reducers={"median": "median"})
    np.testing.assert_allclose(summary["mean"], base)
    np.testing.assert_allclose(summary["median"], base + 100)


def test_summary_frame_follows_grid_order(artifact, base):
    frame = summarize(artifact).to_frame(artifact.grid)

    assert list(frame.columns) == ["n", "loc", "scale", "mean", "median"]
    assert len(frame) == 12
    assert frame.iloc[4].to_dict() == {
        "n": 50, "loc": 1, "scale": 2, "mean": 4.0, "median": 104.0
    }


def test_summary_save_writes_one_csv_per_field(artifact, tmp_path):
    summarize(artifact).save(str(tmp_path), grid=artifact.grid)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["mean.csv", "median.csv"]
