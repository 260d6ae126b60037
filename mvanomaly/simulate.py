# mvanomaly/simulate.py
"""
Données synthétiques pour démontrer les scoreurs : séries journalières
autour de moyennes fixes, avec des pics injectés à des dates connues.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

DEFAULT_MEANS = (20.0, 35.0, 50.0, 65.0, 80.0, 95.0, 110.0, 125.0, 140.0, 155.0)
DEFAULT_SPIKE_DATES = ('2023-02-14', '2023-05-03', '2023-08-21', '2023-11-09')


@dataclass(frozen=True)
class Spike:
    date: str
    variable: str
    magnitude: float


def variable_names(n: int) -> list:
    return [f'var_{i + 1:02d}' for i in range(n)]


def default_spikes(variable: str = 'var_03', magnitude: float = 50.0) -> list:
    return [Spike(d, variable, magnitude) for d in DEFAULT_SPIKE_DATES]


def _apply_spikes(df: pd.DataFrame, spikes: Iterable[Spike]) -> pd.DataFrame:
    for spike in spikes:
        if spike.variable not in df.columns:
            raise ValueError(f"pic sur une variable inconnue '{spike.variable}'")
        mask = df['ds'] == pd.Timestamp(spike.date)
        if not mask.any():
            raise ValueError(f"pic à une date hors de la période simulée : {spike.date}")
        df.loc[mask, spike.variable] += spike.magnitude
    return df


def simulate_daily(start: str = '2023-01-01', periods: int = 365, means: Sequence[float] = DEFAULT_MEANS,
                   sd: float = 2.0, spikes: Iterable[Spike] = (), seed: Optional[int] = 0,
                   noise: str = 'uniform') -> pd.DataFrame:
    """
    Une ligne par jour, une colonne par variable autour de sa moyenne, plus les pics.
    noise: 'uniform' (bruit borné, écart-type sd) ou 'gaussian' (N(mean, sd)).
    Avec un bruit gaussien sur 10 variables, les queues produisent des points
    ordinaires aussi vite isolés qu'un pic sur une seule variable.
    """
    rng = np.random.default_rng(seed)
    names = variable_names(len(means))
    loc = np.asarray(means, dtype=float)
    size = (periods, len(means))
    if noise == 'uniform':
        half = sd * np.sqrt(3.0)
        values = rng.uniform(loc - half, loc + half, size=size)
    elif noise == 'gaussian':
        values = rng.normal(loc=loc, scale=sd, size=size)
    else:
        raise ValueError("noise must be 'uniform' or 'gaussian'")
    df = pd.DataFrame(values, columns=names)
    df.insert(0, 'ds', pd.date_range(start, periods=periods, freq='D'))
    return _apply_spikes(df, spikes)


def simulate_sparse(start: str = '2023-01-01', periods: int = 365, n_variables: int = 10,
                    rate: float = 0.05, mean_count: float = 3.0,
                    spikes: Iterable[Spike] = (), seed: Optional[int] = 0) -> pd.DataFrame:
    """
    Variables de comptage surtout nulles : chaque jour, chaque variable vaut
    Poisson(mean_count) avec probabilité `rate`, 0 sinon. Les pics sont
    ajoutés à leur date, sans tirage aléatoire.
    """
    if not 0 <= rate <= 1:
        raise ValueError(f"rate doit être dans [0, 1], reçu {rate}")
    rng = np.random.default_rng(seed)
    active = rng.random((periods, n_variables)) < rate
    counts = rng.poisson(mean_count, size=(periods, n_variables))
    df = pd.DataFrame(np.where(active, counts, 0).astype(float), columns=variable_names(n_variables))
    df.insert(0, 'ds', pd.date_range(start, periods=periods, freq='D'))
    return _apply_spikes(df, spikes)
