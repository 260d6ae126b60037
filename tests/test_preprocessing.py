# tests/test_preprocessing.py
import pandas as pd
import pytest
from mvanomaly.preprocessing import ensure_freq, impute_missing, normalize


def test_ensure_freq_and_impute():
    df = pd.DataFrame({'ds': pd.to_datetime(['2025-01-01', '2025-01-03', '2025-01-04']),
                       'a': [1, 3, 4], 'b': [10, None, 40]})
    df2 = ensure_freq(df, freq='D')
    assert len(df2) == 4
    df3 = impute_missing(df2, method='interpolate')
    assert df3[['a', 'b']].isna().sum().sum() == 0
    assert df3.loc[1, 'a'] == 2


def test_ensure_freq_averages_duplicates():
    df = pd.DataFrame({'ds': pd.to_datetime(['2025-01-01', '2025-01-01', '2025-01-02']), 'a': [1.0, 3.0, 5.0]})
    df2 = ensure_freq(df)
    assert list(df2['a']) == [2.0, 5.0]


def test_impute_methods():
    df = pd.DataFrame({'ds': pd.date_range('2025-01-01', periods=3), 'a': [None, 2.0, None]})
    assert list(impute_missing(df, 'ffill')['a'].fillna(-1)) == [-1, 2.0, 2.0]
    assert list(impute_missing(df, 'bfill')['a'].fillna(-1)) == [2.0, 2.0, -1]
    assert list(impute_missing(df, 'zero')['a']) == [0.0, 2.0, 0.0]
    with pytest.raises(ValueError):
        impute_missing(df, 'mean')


def test_normalize_standard_and_minmax():
    df = pd.DataFrame({'ds': pd.date_range('2025-01-01', periods=3), 'a': [1, 2, 3], 'b': [10, 20, 30]})
    std = normalize(df, 'Standard')
    assert abs(std['a'].mean()) < 1e-12
    mm = normalize(df, 'MinMax', cols=['b'])
    assert list(mm['b']) == [0.0, 0.5, 1.0]
    assert list(mm['a']) == [1, 2, 3]
    with pytest.raises(ValueError):
        normalize(df, 'Robust')
