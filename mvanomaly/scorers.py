# mvanomaly/scorers.py
"""
Deux scoreurs interchangeables : une table en entrée, une métrique
d'anomalie normalisée par ligne en sortie (>= 1.0 signale une anomalie).

- DistanceScorer : distance au vecteur moyen, seuil tiré d'une loi gamma
  ajustée sur les distances.
- IsolationForestScorer : score d'isolation, seuil au quantile empirique.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Type, Union

import numpy as np
import pandas as pd
from sklearn.ensemble import IsolationForest

from mvanomaly.config import AnalysisConfig, resolve_config
from mvanomaly.distances import check_matrix, get_metric
from mvanomaly.errors import InvalidConfiguration
from mvanomaly.fitting import GammaFit, fit_gamma, gamma_threshold

log = logging.getLogger(__name__)


@dataclass
class ScoreResult:
    scorer: str
    raw: np.ndarray
    metric: np.ndarray
    threshold: float
    offset: float = 0.0
    fit: Optional[GammaFit] = None

    @property
    def flags(self) -> np.ndarray:
        # NaN >= 1.0 vaut False
        return self.metric >= 1.0

    def ranking(self) -> np.ndarray:
        """Positions des lignes par métrique décroissante ; à égalité, ordre d'origine."""
        key = np.where(np.isnan(self.metric), -np.inf, self.metric)
        return np.argsort(-key, kind="stable")

    def diagnostics(self) -> dict:
        return self.fit.to_dict() if self.fit is not None else {}

    def to_frame(self, index=None) -> pd.DataFrame:
        return pd.DataFrame({"raw": self.raw, "metric": self.metric, "anomaly": self.flags}, index=index)


class AnomalyScorer:
    name = "base"

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = resolve_config(config)

    def score(self, X) -> ScoreResult:
        raise NotImplementedError


class DistanceScorer(AnomalyScorer):
    name = "distance"

    def score(self, X) -> ScoreResult:
        cfg = self.config
        metric = get_metric(cfg.metric, regularization=cfg.regularization, minkowski_p=cfg.minkowski_p)
        distances = metric.fit_transform(X)
        fit = fit_gamma(distances)
        threshold = gamma_threshold(fit, cfg.tail_probability)
        if np.isfinite(threshold) and threshold > 0:
            normalized = distances / threshold
        else:
            log.warning("distance: seuil invalide (%s), métrique d'anomalie indéfinie", threshold)
            normalized = np.full(distances.shape, np.nan)
        log.debug("distance[%s]: seuil=%.6g p=%g, %d anomalies sur %d lignes",
                  metric.name, threshold, cfg.tail_probability, int(np.sum(normalized >= 1.0)), distances.size)
        return ScoreResult(self.name, distances, normalized, threshold, 0.0, fit)


class IsolationForestScorer(AnomalyScorer):
    name = "isolation_forest"

    def __init__(self, config: Optional[AnalysisConfig] = None,
                 random_state: Union[int, np.random.RandomState, None] = None):
        super().__init__(config)
        # source pseudo-aléatoire explicite ; par défaut la graine de la config
        self.random_state = self.config.random_seed if random_state is None else random_state
        self.model: Optional[IsolationForest] = None

    def score(self, X) -> ScoreResult:
        cfg = self.config
        arr = check_matrix(X)
        clf = IsolationForest(
            n_estimators=cfg.n_trees,
            max_samples=min(cfg.sample_size, arr.shape[0]),
            random_state=self.random_state,
            n_jobs=cfg.n_jobs,
        )
        clf.fit(arr)
        self.model = clf
        # score_samples renvoie -s(x, n) ; s proche de 1 = anomalie forte
        scores = -clf.score_samples(arr)
        offset = float(scores.min())
        threshold = float(np.quantile(scores, cfg.quantile))
        spread = threshold - offset
        if spread > 0:
            normalized = (scores - offset) / spread
        else:
            # le quantile tombe sur le minimum : les lignes à égalité valent 0,
            # toute ligne strictement au-dessus est signalée (inf)
            normalized = np.where(scores > offset, np.inf, 0.0)
        log.debug("isolation_forest: seuil=%.6g q=%g min=%.6g, %d anomalies sur %d lignes",
                  threshold, cfg.quantile, offset, int(np.sum(normalized >= 1.0)), scores.size)
        return ScoreResult(self.name, scores, normalized, threshold, offset, None)


SCORERS: Dict[str, Type[AnomalyScorer]] = {
    DistanceScorer.name: DistanceScorer,
    IsolationForestScorer.name: IsolationForestScorer,
}


def get_scorer(name: str, config: Optional[AnalysisConfig] = None) -> AnomalyScorer:
    key = str(name).strip().lower()
    if key not in SCORERS:
        raise InvalidConfiguration(f"scoreur inconnu '{name}'; choix possibles : {sorted(SCORERS)}")
    return SCORERS[key](config)
