import numpy as np
import pandas as pd
import pytest
from mvanomaly.simulate import DEFAULT_MEANS, Spike, default_spikes, simulate_daily, simulate_sparse


def test_simulate_daily_shape_and_reproducibility():
    df = simulate_daily(periods=365, seed=1)
    assert df.shape == (365, 11)
    assert df['ds'].is_monotonic_increasing and df['ds'].is_unique
    assert df.equals(simulate_daily(periods=365, seed=1))
    assert abs(df['var_01'].mean() - DEFAULT_MEANS[0]) < 1.0


def test_spikes_are_deterministic():
    base = simulate_daily(seed=4)
    spiked = simulate_daily(spikes=default_spikes('var_03', magnitude=50.0), seed=4)
    diff = spiked['var_03'] - base['var_03']
    assert (diff > 0).sum() == 4
    assert set(spiked.loc[diff > 0, 'ds'].dt.strftime('%Y-%m-%d')) == {s.date for s in default_spikes()}
    assert diff[diff > 0].round(9).eq(50.0).all()


def test_spike_errors():
    with pytest.raises(ValueError):
        simulate_daily(periods=10, spikes=[Spike('2030-01-01', 'var_01', 5.0)])
    with pytest.raises(ValueError):
        simulate_daily(periods=10, spikes=[Spike('2023-01-02', 'nope', 5.0)])


def test_simulate_sparse_spike_lands_on_its_date():
    df = simulate_sparse(periods=100, rate=0.0, spikes=[Spike('2023-01-10', 'var_02', 7.0)], seed=0)
    assert df.drop(columns='ds').to_numpy().sum() == 7.0
    assert df.loc[df['ds'] == pd.Timestamp('2023-01-10'), 'var_02'].item() == 7.0
    with pytest.raises(ValueError):
        simulate_sparse(rate=2.0)


def test_uniform_noise_is_bounded():
    df = simulate_daily(periods=500, sd=2.0, seed=2)
    half = 2.0 * np.sqrt(3.0)
    for name, mean in zip(df.columns[1:], DEFAULT_MEANS):
        assert df[name].between(mean - half, mean + half).all()
    assert abs(df['var_05'].std() - 2.0) < 0.3


def test_gaussian_noise_and_unknown_noise():
    df = simulate_daily(periods=500, sd=2.0, seed=2, noise='gaussian')
    assert abs(df['var_05'].std() - 2.0) < 0.3
    assert not df.equals(simulate_daily(periods=500, sd=2.0, seed=2))
    with pytest.raises(ValueError):
        simulate_daily(periods=10, noise='laplace')
