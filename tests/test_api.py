from fastapi.testclient import TestClient
from mvanomaly.api import app
from mvanomaly.simulate import default_spikes, simulate_daily

client = TestClient(app)


def _rows(periods=120):
    df = simulate_daily(periods=periods, spikes=default_spikes()[:1], seed=0)
    df['ds'] = df['ds'].dt.strftime('%Y-%m-%d')
    return df.to_dict(orient='records')


def test_health():
    assert client.get('/health').json() == {'status': 'ok'}


def test_score_both():
    r = client.post('/score', json={'rows': _rows(), 'config': {'random_seed': 1}})
    assert r.status_code == 200
    body = r.json()
    assert len(body['records']) == 120
    assert len(body['variables']) == 10
    assert set(body['thresholds']) == {'distance', 'isolation_forest'}
    assert {'shape', 'rate', 'ks', 'ad', 'cvm'} <= set(body['fit'])
    spike = next(rec for rec in body['records'] if rec['ds'].startswith('2023-02-14'))
    assert spike['distance']['anomaly']


def test_score_single_scorer():
    r = client.post('/score', json={'rows': _rows(), 'scorer': 'isolation_forest'})
    assert r.status_code == 200
    assert r.json()['fit'] is None


def test_invalid_configuration_is_422():
    r = client.post('/score', json={'rows': _rows(), 'config': {'tail_probability': 2}})
    assert r.status_code == 422


def test_degenerate_covariance_is_400():
    rows = [{'ds': f'2025-01-0{i + 1}', 'a': 1.0, 'b': float(i)} for i in range(5)]
    r = client.post('/score', json={'rows': rows, 'scorer': 'distance', 'config': {'metric': 'mahalanobis'}})
    assert r.status_code == 400


def test_insufficient_data_is_400():
    r = client.post('/score', json={'rows': [{'ds': '2025-01-01', 'a': 1.0}]})
    assert r.status_code == 400


def test_non_numeric_column_is_400():
    r = client.post('/score', json={'rows': _rows(), 'columns': ['ds']})
    assert r.status_code == 400


def test_date_column_detected_without_ts_col():
    rows = [{'date': rec['ds'], 'var_01': rec['var_01'], 'var_02': rec['var_02']} for rec in _rows()]
    r = client.post('/score', json={'rows': rows, 'scorer': 'distance'})
    assert r.status_code == 200
    assert len(r.json()['records']) == 120
