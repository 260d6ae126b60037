# mvanomaly/preprocessing.py
from typing import List, Optional

import pandas as pd
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from mvanomaly.etl import variable_columns


def ensure_freq(df: pd.DataFrame, freq: str = 'D', ts_col: str = 'ds', value_cols: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Force une fréquence régulière (asfreq). Agrège les doublons par moyenne avant resampling.
    """
    df = df.copy()
    df[ts_col] = pd.to_datetime(df[ts_col], errors='coerce')
    df = df.dropna(subset=[ts_col])
    cols = value_cols if value_cols is not None else variable_columns(df)

    # Agrégation des doublons par moyenne pour éviter "duplicate labels"
    if df[ts_col].duplicated().any():
        df = df.groupby(ts_col)[cols].mean().reset_index()

    df = df.set_index(ts_col).sort_index()
    df = df.asfreq(freq)  # remplit les trous (index DatetimeIndex)
    return df.reset_index()


def impute_missing(df: pd.DataFrame, method: str = 'interpolate', cols: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Impute les valeurs manquantes : 'interpolate' | 'ffill' | 'bfill' | 'zero'
    """
    df = df.copy()
    cols = cols if cols is not None else variable_columns(df)
    if method == 'interpolate':
        # interpolate ne remplit pas les bords
        df[cols] = df[cols].interpolate(limit_direction='both')
    elif method == 'ffill':
        df[cols] = df[cols].ffill()
    elif method == 'bfill':
        df[cols] = df[cols].bfill()
    elif method == 'zero':
        df[cols] = df[cols].fillna(0)
    else:
        raise ValueError("method must be one of 'interpolate', 'ffill', 'bfill', 'zero'")
    return df


def normalize(df: pd.DataFrame, method: str = 'Standard', cols: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Normalise les variables `cols` (toutes par défaut).
    method: 'MinMax' or 'Standard'
    """
    df = df.copy()
    if method not in ('MinMax', 'Standard'):
        raise ValueError("method must be 'MinMax' or 'Standard'")
    cols = cols if cols is not None else variable_columns(df)
    scaler = MinMaxScaler() if method == 'MinMax' else StandardScaler()
    df[cols] = scaler.fit_transform(df[cols].astype(float))
    return df
