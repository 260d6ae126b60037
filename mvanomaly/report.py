# mvanomaly/report.py
from typing import List, Optional

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from scipy import stats

from mvanomaly.etl import variable_columns
from mvanomaly.preprocessing import normalize
from mvanomaly.fitting import GammaFit


def heatmap_figure(df: pd.DataFrame, cols: Optional[List[str]] = None, title: str = "Variables standardisées") -> go.Figure:
    """Heatmap variables x temps des valeurs centrées réduites."""
    cols = cols if cols is not None else variable_columns(df)
    scaled = normalize(df, method='Standard', cols=cols)
    fig = go.Figure(go.Heatmap(z=scaled[cols].to_numpy().T, x=scaled['ds'], y=cols, colorscale='RdBu_r', zmid=0))
    fig.update_layout(title=title, xaxis_title="date", yaxis_title="variable")
    return fig


def distance_histogram(distances, threshold: float, fit: Optional[GammaFit] = None, bins: int = 50,
                       title: str = "Distribution des distances") -> go.Figure:
    """Histogramme des distances, densité gamma ajustée et seuil."""
    distances = np.asarray(distances, dtype=float)
    fig = go.Figure()
    fig.add_trace(go.Histogram(x=distances, nbinsx=bins, histnorm='probability density', name='distance'))
    if fit is not None and fit.valid:
        grid = np.linspace(0, max(float(distances.max()), threshold) * 1.05, 400)
        fig.add_trace(go.Scatter(x=grid, y=stats.gamma.pdf(grid, fit.shape, scale=fit.scale),
                                 mode='lines', name=f'gamma(k={fit.shape:.3g}, θ={fit.rate:.3g})'))
    if np.isfinite(threshold):
        fig.add_vline(x=threshold, line_dash='dash', line_color='red', annotation_text='seuil')
    fig.update_layout(title=title, xaxis_title="distance", yaxis_title="densité")
    return fig


def metric_timeseries(df: pd.DataFrame, metric_col: str = 'anomaly_metric', title: Optional[str] = None) -> go.Figure:
    """Métrique normalisée dans le temps ; la ligne 1.0 sépare normal et anomalie."""
    flagged = df[df[metric_col] >= 1.0]
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=df['ds'], y=df[metric_col], mode='lines', name=metric_col))
    fig.add_trace(go.Scatter(x=flagged['ds'], y=flagged[metric_col], mode='markers', name='anomalies',
                             marker=dict(color='red', size=8)))
    fig.add_hline(y=1.0, line_dash='dash', line_color='grey')
    fig.update_layout(title=title or metric_col, xaxis_title="date", yaxis_title="métrique")
    return fig


def comparison_figure(df: pd.DataFrame, cols=('anomaly_metric', 'iforest_metric')) -> go.Figure:
    fig = go.Figure()
    for c in cols:
        fig.add_trace(go.Scatter(x=df['ds'], y=df[c], mode='lines', name=c))
    fig.add_hline(y=1.0, line_dash='dash', line_color='grey')
    fig.update_layout(title="Distance vs isolation forest", xaxis_title="date", yaxis_title="métrique")
    return fig
