import pytest
from mvanomaly.config import load_config, resolve_config
from mvanomaly.errors import InvalidConfiguration


def test_defaults():
    cfg = load_config()
    assert cfg.metric == 'euclidean'
    assert cfg.tail_probability == 0.001
    assert cfg.quantile == 0.99
    assert cfg.random_seed == 42


@pytest.mark.parametrize('overrides', [
    {'tail_probability': 0.0},
    {'tail_probability': 1.0},
    {'quantile': 1.2},
    {'metric': 'cosine'},
    {'sample_size': 1},
    {'n_trees': 0},
    {'regularization': -1.0},
    {'unknown_option': 3},
])
def test_invalid_values_rejected(overrides):
    with pytest.raises(InvalidConfiguration):
        load_config(**overrides)


def test_metric_is_normalized():
    assert load_config(metric=' Mahalanobis ').metric == 'mahalanobis'


def test_environment_defaults(monkeypatch):
    monkeypatch.setenv('MVA_TAIL_PROBABILITY', '0.01')
    monkeypatch.setenv('MVA_METRIC', 'mahalanobis')
    cfg = load_config()
    assert cfg.tail_probability == 0.01
    assert cfg.metric == 'mahalanobis'
    # explicit values win over the environment
    assert load_config(tail_probability=0.05).tail_probability == 0.05


def test_resolve_config_overrides():
    base = load_config(quantile=0.95)
    assert resolve_config(base) is base
    cfg = resolve_config(base, random_seed=7)
    assert cfg.quantile == 0.95 and cfg.random_seed == 7


def test_assignment_is_validated():
    cfg = load_config()
    with pytest.raises(InvalidConfiguration):
        cfg.quantile = 5.0
    with pytest.raises(InvalidConfiguration):
        cfg.metric = 'cosine'
    assert cfg.quantile == 0.99
    assert cfg.metric == 'euclidean'
    cfg.metric = 'Hamming'
    assert cfg.metric == 'hamming'
