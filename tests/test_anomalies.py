import pandas as pd
import pytest
from mvanomaly.anomalies import distance_anomalies, isolation_forest_anomalies, score_table, top_anomalies
from mvanomaly.config import load_config
from mvanomaly.errors import InsufficientData
from mvanomaly.simulate import DEFAULT_SPIKE_DATES, default_spikes, simulate_daily


def test_distance_small_table():
    df = pd.DataFrame({'ds': pd.date_range('2025-01-01', periods=5), 'a': [1., 2., 3., 2., 1.], 'b': [5., 4., 6., 5., 5.]})
    out = distance_anomalies(df)
    assert {'distance', 'anomaly_metric', 'anomaly_dist'} <= set(out.columns)
    assert out['anomaly_dist'].dtype == bool
    assert (out['distance'] >= 0).all()
    assert 'shape' in out.attrs['distance_fit']


def test_isolation_forest_small():
    df = pd.DataFrame({'ds': pd.date_range('2025-01-01', periods=3), 'y': [1, 2, 3]})
    out = isolation_forest_anomalies(df, cols=['y'])
    assert 'anomaly_if' in out.columns
    assert out['iforest_metric'].min() == 0.0


def test_single_row_is_insufficient():
    df = pd.DataFrame({'ds': pd.date_range('2025-01-01', periods=1), 'y': [1.0]})
    with pytest.raises(InsufficientData):
        distance_anomalies(df)
    with pytest.raises(InsufficientData):
        isolation_forest_anomalies(df)


def test_score_table_ignores_score_columns():
    df = simulate_daily(periods=60, seed=3)
    out = score_table(df)
    assert {'anomaly_metric', 'iforest_metric'} <= set(out.columns)
    # the second scorer must not see the distance columns as variables
    again = isolation_forest_anomalies(df.copy(), cols=[c for c in df.columns if c.startswith('var_')])
    assert (again['iforest_score'] == out['iforest_score']).all()


def test_top_anomalies_ties_keep_table_order():
    df = pd.DataFrame({'ds': pd.date_range('2025-01-01', periods=4), 'anomaly_metric': [0.5, 2.0, 0.5, 2.0]})
    top = top_anomalies(df, n=3)
    assert list(top.index) == [1, 3, 0]


def test_top_anomalies_requires_metric():
    df = pd.DataFrame({'ds': pd.date_range('2025-01-01', periods=2), 'y': [1, 2]})
    with pytest.raises(ValueError):
        top_anomalies(df)


@pytest.mark.parametrize('seed', [0, 7, 21])
@pytest.mark.parametrize('metric', ['euclidean', 'mahalanobis'])
def test_end_to_end_spikes_flagged(metric, seed):
    df = simulate_daily(periods=365, spikes=default_spikes('var_03'), seed=seed)
    cfg = load_config(metric=metric, tail_probability=0.001, quantile=0.99, random_seed=42)
    out = score_table(df, config=cfg)
    spike_rows = out[out['ds'].isin(pd.to_datetime(list(DEFAULT_SPIKE_DATES)))]
    assert len(spike_rows) == 4
    assert (spike_rows['anomaly_metric'] >= 1.0).all()
    assert (spike_rows['iforest_metric'] >= 1.0).all()
