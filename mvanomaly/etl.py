# mvanomaly/etl.py
import io
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from mvanomaly.errors import InsufficientData

DATE_CANDIDATES = ['date', 'ds', 'timestamp', 'time']

# colonnes produites par les scoreurs, jamais prises comme variables
SCORE_COLUMNS = {'distance', 'anomaly_metric', 'anomaly_dist', 'iforest_score', 'iforest_metric', 'anomaly_if'}


def _standardize(df: pd.DataFrame, ts_col: Optional[str]) -> pd.DataFrame:
    # cleanup header whitespace & BOM
    df.columns = df.columns.astype(str).str.strip().str.replace('\ufeff', '')
    cols_lower = [c.lower() for c in df.columns]

    if ts_col is None:
        ts_col = next((df.columns[i] for i, c in enumerate(cols_lower) if c in DATE_CANDIDATES), None)
        if ts_col is None:
            raise ValueError(f"Aucune colonne date détectée parmi {DATE_CANDIDATES}; colonnes présentes: {list(df.columns)}")
    elif ts_col not in df.columns:
        raise ValueError(f"colonne date '{ts_col}' absente; colonnes présentes: {list(df.columns)}")

    df = df.rename(columns={ts_col: 'ds'})
    df['ds'] = pd.to_datetime(df['ds'], errors='coerce')
    return df.dropna(subset=['ds']).sort_values('ds', kind='mergesort').reset_index(drop=True)


def load_csv(source: Union[str, "io.BytesIO"], ts_col: Optional[str] = None, value_cols: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Charge une table d'observations depuis un chemin ou un buffer (UploadedFile streamlit).
    - ts_col: colonne date; sinon cherchée (case-insensitive) parmi DATE_CANDIDATES, renommée 'ds'
    - value_cols: variables à garder; par défaut toutes les colonnes numériques
    """
    df = _standardize(pd.read_csv(source), ts_col)
    if value_cols is not None:
        missing = [c for c in value_cols if c not in df.columns]
        if missing:
            raise ValueError(f"colonnes valeur absentes: {missing}; colonnes présentes: {list(df.columns)}")
        df = df[['ds'] + list(value_cols)]
    return df


def from_records(records: List[dict], ts_col: Optional[str] = None) -> pd.DataFrame:
    """Table d'observations depuis une liste de dicts (payload JSON); colonne date détectée si ts_col est None."""
    if not records:
        raise InsufficientData("aucune ligne reçue")
    return _standardize(pd.DataFrame.from_records(records), ts_col)


def variable_columns(df: pd.DataFrame) -> List[str]:
    return [c for c in df.columns
            if c != 'ds' and c not in SCORE_COLUMNS
            and pd.api.types.is_numeric_dtype(df[c]) and not pd.api.types.is_bool_dtype(df[c])]


def observation_matrix(df: pd.DataFrame, cols: Optional[List[str]] = None) -> Tuple[np.ndarray, List[str]]:
    """Matrice (lignes x variables) en float et la liste des variables retenues."""
    if not isinstance(df, pd.DataFrame):
        raise ValueError("observation_matrix: attendu un DataFrame pandas.")
    cols = list(cols) if cols is not None else variable_columns(df)
    if not cols:
        raise InsufficientData(f"aucune variable numérique; colonnes présentes: {list(df.columns)}")
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"colonnes absentes du DataFrame: {missing}")
    not_numeric = [c for c in cols if not pd.api.types.is_numeric_dtype(df[c])]
    if not_numeric:
        raise ValueError(f"colonnes non numériques: {not_numeric}")
    if len(df) < 2:
        raise InsufficientData(f"au moins 2 lignes sont nécessaires, reçu {len(df)}")
    return df[cols].to_numpy(dtype=float), cols
