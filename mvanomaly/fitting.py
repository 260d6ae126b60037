# mvanomaly/fitting.py
"""
Ajustement d'une loi gamma sur les distances et seuil associé.

L'ajustement n'est jamais bloquant : s'il échoue ou s'il est mauvais, les
statistiques d'adéquation (KS, Anderson-Darling, Cramér-von Mises) le
montrent et c'est à l'appelant de juger. On ne remplace jamais la loi gamma
par une autre loi.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from mvanomaly.errors import InvalidConfiguration

log = logging.getLogger(__name__)

DEFAULT_CANDIDATES = ("gamma", "lognorm", "weibull_min", "expon", "pareto")


@dataclass
class GammaFit:
    shape: float
    rate: float
    ks: float = float("nan")
    ad: float = float("nan")
    cvm: float = float("nan")
    loglik: float = float("nan")
    aic: float = float("nan")
    bic: float = float("nan")
    n: int = 0
    method: str = "mle"
    converged: bool = True

    @property
    def scale(self) -> float:
        return 1.0 / self.rate if self.rate else float("nan")

    @property
    def valid(self) -> bool:
        return bool(np.isfinite(self.shape) and np.isfinite(self.rate) and self.shape > 0 and self.rate > 0)

    def to_dict(self) -> dict:
        return asdict(self)


def _anderson_darling(cdf_sorted: np.ndarray) -> float:
    # A² = -n - (1/n) sum (2i-1) [ln F(x_i) + ln(1 - F(x_{n+1-i}))]
    n = cdf_sorted.size
    u = np.clip(cdf_sorted, 1e-300, 1 - 1e-16)
    i = np.arange(1, n + 1)
    return float(-n - np.sum((2 * i - 1) * (np.log(u) + np.log1p(-u[::-1]))) / n)


def goodness_of_fit(data: np.ndarray, dist, params: Tuple[float, ...]) -> dict:
    """Statistiques KS, AD, CvM et log-vraisemblance d'une loi scipy ajustée."""
    x = np.sort(np.asarray(data, dtype=float))
    n = x.size
    k = len(params) - 1  # loc fixé à 0
    cdf = dist.cdf(x, *params)
    loglik = float(np.sum(dist.logpdf(x, *params)))
    return {
        "ks": float(stats.kstest(x, dist.cdf, args=params).statistic),
        "ad": _anderson_darling(cdf),
        "cvm": float(stats.cramervonmises(x, dist.cdf, args=params).statistic),
        "loglik": loglik,
        "aic": 2 * k - 2 * loglik,
        "bic": k * np.log(n) - 2 * loglik,
    }


def _moments_gamma(x: np.ndarray) -> Tuple[float, float]:
    mean = x.mean()
    var = x.var(ddof=1) if x.size > 1 else 0.0
    if var <= 0 or mean <= 0:
        return float("nan"), float("nan")
    return mean ** 2 / var, mean / var


def fit_gamma(distances) -> GammaFit:
    """
    Ajuste une gamma (forme k, taux theta, loc = 0) par maximum de vraisemblance.
    Les valeurs <= 0 sont hors du support et sont écartées.
    """
    x = np.asarray(distances, dtype=float).ravel()
    x = x[np.isfinite(x) & (x > 0)]
    n = int(x.size)
    if n < 2 or np.ptp(x) == 0:
        log.warning("fit_gamma: %d valeurs positives distinctes insuffisantes, ajustement impossible", n)
        return GammaFit(shape=float("nan"), rate=float("nan"), n=n, method="none", converged=False)

    method, converged = "mle", True
    try:
        shape, _, scale = stats.gamma.fit(x, floc=0)
        if not (np.isfinite(shape) and np.isfinite(scale) and shape > 0 and scale > 0):
            raise ValueError(f"paramètres non finis (shape={shape}, scale={scale})")
        rate = 1.0 / scale
    except (ValueError, RuntimeError, FloatingPointError) as e:
        log.warning("fit_gamma: échec du maximum de vraisemblance (%s), repli sur la méthode des moments", e)
        shape, rate = _moments_gamma(x)
        method, converged = "mme", False

    fit = GammaFit(shape=float(shape), rate=float(rate), n=n, method=method, converged=converged)
    if fit.valid:
        gof = goodness_of_fit(x, stats.gamma, (fit.shape, 0.0, fit.scale))
        for key, value in gof.items():
            setattr(fit, key, float(value))
    log.debug("fit_gamma: shape=%.4g rate=%.4g ks=%.4g n=%d", fit.shape, fit.rate, fit.ks, n)
    return fit


def gamma_threshold(fit: GammaFit, tail_probability: float = 0.001) -> float:
    """Valeur x telle que P(X > x) = tail_probability sous la gamma ajustée."""
    if not 0 < tail_probability < 1:
        raise InvalidConfiguration(f"tail_probability doit être dans ]0, 1[, reçu {tail_probability}")
    if not fit.valid:
        return float("nan")
    return float(stats.gamma.isf(tail_probability, fit.shape, loc=0, scale=fit.scale))


def compare_fits(distances, candidates: Iterable[str] = DEFAULT_CANDIDATES) -> pd.DataFrame:
    """
    Tableau de diagnostic : une ligne par loi candidate (loc fixé à 0),
    avec ses paramètres et les mêmes statistiques d'adéquation.
    Sert au rapport uniquement ; le seuil reste calculé sur la gamma.
    """
    x = np.asarray(distances, dtype=float).ravel()
    x = x[np.isfinite(x) & (x > 0)]
    rows = []
    for name in candidates:
        dist = getattr(stats, name, None)
        if dist is None:
            raise InvalidConfiguration(f"loi inconnue dans scipy.stats : '{name}'")
        row = {"distribution": name, "params": None, "ks": np.nan, "ad": np.nan, "cvm": np.nan,
               "loglik": np.nan, "aic": np.nan, "bic": np.nan, "error": None}
        try:
            params = dist.fit(x, floc=0)
            row["params"] = tuple(float(p) for p in params)
            row.update(goodness_of_fit(x, dist, params))
        except (ValueError, RuntimeError, FloatingPointError, stats.FitError) as e:
            row["error"] = str(e)
            log.warning("compare_fits: échec de l'ajustement %s (%s)", name, e)
        rows.append(row)
    return pd.DataFrame(rows).sort_values("aic", na_position="last", kind="mergesort").reset_index(drop=True)
