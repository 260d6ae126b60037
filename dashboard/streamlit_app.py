# dashboard/streamlit_app.py
import sys, os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import logging

import streamlit as st
from mvanomaly.anomalies import distance_anomalies, isolation_forest_anomalies, top_anomalies
from mvanomaly.config import load_config
from mvanomaly.distances import METRICS
from mvanomaly.errors import AnomalyDetectionError
from mvanomaly.etl import load_csv, variable_columns
from mvanomaly.fitting import GammaFit, compare_fits
from mvanomaly.preprocessing import ensure_freq, impute_missing
from mvanomaly.report import comparison_figure, distance_histogram, heatmap_figure, metric_timeseries
from mvanomaly.simulate import default_spikes, simulate_daily, simulate_sparse

logging.basicConfig(level=logging.INFO)

st.set_page_config(layout="wide")
st.title("📊 Détection d'anomalies multivariées")

# Source : simulation ou CSV
source = st.radio("Données", ["Simulation journalière", "Simulation creuse", "CSV"], horizontal=True)
seed = st.number_input("Graine", min_value=0, value=42)
try:
    if source == "CSV":
        uploaded = st.file_uploader("Upload CSV (date + variables numériques)", type=['csv'])
        if not uploaded:
            st.stop()
        df = load_csv(uploaded)
    elif source == "Simulation creuse":
        df = simulate_sparse(spikes=default_spikes(magnitude=10.0), seed=int(seed))
    else:
        df = simulate_daily(spikes=default_spikes(), seed=int(seed))
except ValueError as e:
    st.error(f"Erreur chargement des données : {e}")
    st.stop()

cols = st.multiselect("Variables", variable_columns(df), default=variable_columns(df))
df = ensure_freq(df[['ds'] + cols], freq='D')
df = impute_missing(df, method='interpolate', cols=cols)

st.subheader("Variables")
st.plotly_chart(heatmap_figure(df, cols), use_container_width=True)

# CONFIGURATION UI
st.subheader("Configuration")
col1, col2, col3 = st.columns(3)
with col1:
    metric = st.selectbox("Distance", sorted(METRICS), index=sorted(METRICS).index('euclidean'))
with col2:
    tail_probability = st.number_input("Probabilité de queue", min_value=1e-6, max_value=0.5, value=0.001, format="%.4f")
with col3:
    quantile = st.slider("Quantile isolation forest", min_value=0.5, max_value=0.999, value=0.99)

try:
    cfg = load_config(metric=metric, tail_probability=tail_probability, quantile=quantile, random_seed=int(seed))
    df = distance_anomalies(df, cols, cfg)
    df = isolation_forest_anomalies(df, cols, cfg)
except AnomalyDetectionError as e:
    st.error(f"{type(e).__name__} : {e}")
    st.stop()

# Distance
st.subheader("Méthode des distances")
fit = GammaFit(**df.attrs['distance_fit'])
threshold = df.attrs['distance_threshold']
st.write(f"Anomalies (métrique >= 1): {int(df['anomaly_dist'].sum())} | seuil: {threshold:.4g}")
st.plotly_chart(distance_histogram(df['distance'], threshold, fit), use_container_width=True)
st.write("Ajustement gamma :", fit.to_dict())
st.dataframe(compare_fits(df['distance']))
st.plotly_chart(metric_timeseries(df, 'anomaly_metric'), use_container_width=True)

# Isolation forest
st.subheader("Isolation forest")
st.write(f"Anomalies (métrique >= 1): {int(df['anomaly_if'].sum())}")
st.plotly_chart(metric_timeseries(df, 'iforest_metric'), use_container_width=True)

st.subheader("Comparaison")
st.plotly_chart(comparison_figure(df), use_container_width=True)
st.write(top_anomalies(df, 'anomaly_metric', n=10))
