# mvanomaly/anomalies.py
import logging
from typing import Optional

import pandas as pd

from mvanomaly.config import AnalysisConfig
from mvanomaly.etl import observation_matrix
from mvanomaly.scorers import DistanceScorer, IsolationForestScorer

log = logging.getLogger(__name__)


def distance_anomalies(df: pd.DataFrame, cols: Optional[list] = None, config: Optional[AnalysisConfig] = None) -> pd.DataFrame:
    """
    Ajoute les colonnes 'distance', 'anomaly_metric' et 'anomaly_dist'.
    Les diagnostics de l'ajustement gamma sont rangés dans df.attrs['distance_fit'].
    """
    X, cols = observation_matrix(df, cols)
    res = DistanceScorer(config).score(X)
    df['distance'] = res.raw
    df['anomaly_metric'] = res.metric
    df['anomaly_dist'] = res.flags
    df.attrs['distance_fit'] = res.diagnostics()
    df.attrs['distance_threshold'] = res.threshold
    log.info("distance_anomalies: %d anomalies sur %d lignes (%d variables)", int(res.flags.sum()), len(df), len(cols))
    return df


def isolation_forest_anomalies(df: pd.DataFrame, cols: Optional[list] = None, config: Optional[AnalysisConfig] = None) -> pd.DataFrame:
    """Ajoute les colonnes 'iforest_score', 'iforest_metric' et 'anomaly_if'."""
    X, cols = observation_matrix(df, cols)
    res = IsolationForestScorer(config).score(X)
    df['iforest_score'] = res.raw
    df['iforest_metric'] = res.metric
    df['anomaly_if'] = res.flags
    df.attrs['iforest_threshold'] = res.threshold
    log.info("isolation_forest_anomalies: %d anomalies sur %d lignes (%d variables)", int(res.flags.sum()), len(df), len(cols))
    return df


def score_table(df: pd.DataFrame, cols: Optional[list] = None, config: Optional[AnalysisConfig] = None) -> pd.DataFrame:
    # les variables sont figées avant d'ajouter les colonnes de score
    _, cols = observation_matrix(df, cols)
    df = distance_anomalies(df, cols, config)
    return isolation_forest_anomalies(df, cols, config)


def top_anomalies(df: pd.DataFrame, metric_col: str = 'anomaly_metric', n: int = 10) -> pd.DataFrame:
    """Les n lignes de métrique la plus forte ; à égalité, l'ordre de la table est conservé."""
    if metric_col not in df.columns:
        raise ValueError(f"top_anomalies: colonne '{metric_col}' absente; lancer le scoreur d'abord.")
    return df.sort_values(metric_col, ascending=False, kind='mergesort', na_position='last').head(n)
