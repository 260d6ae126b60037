# mvanomaly/distances.py
import logging
from typing import Dict, Optional, Type

import numpy as np
from scipy import stats

from mvanomaly.errors import DegenerateCovariance, InsufficientData, InvalidConfiguration

log = logging.getLogger(__name__)

# au-delà de ce conditionnement la covariance est considérée comme singulière
MAX_CONDITION_NUMBER = 1e12


def check_matrix(X) -> np.ndarray:
    arr = np.asarray(X, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ValueError(f"attendu une matrice 2D (lignes x variables), reçu ndim={arr.ndim}")
    if arr.shape[0] < 2:
        raise InsufficientData(f"au moins 2 lignes sont nécessaires pour calculer une moyenne, reçu {arr.shape[0]}")
    if arr.shape[1] == 0:
        raise InsufficientData("aucune variable numérique dans la table")
    if not np.isfinite(arr).all():
        raise ValueError("la table contient des valeurs manquantes ou infinies; imputer avant le calcul")
    return arr


class DistanceMetric:
    """
    Stratégie de distance entre un vecteur et un vecteur de référence.

    fit(X) calcule la référence (moyenne par colonne) sur toute la table,
    transform(X) renvoie une distance par ligne. Les sous-classes n'ont qu'à
    implémenter compute() et, si besoin, _rows().
    """
    name = "base"

    def __init__(self):
        self.reference: Optional[np.ndarray] = None

    def fit(self, X) -> "DistanceMetric":
        arr = check_matrix(X)
        self.reference = arr.mean(axis=0)
        return self

    def compute(self, vector, reference) -> float:
        raise NotImplementedError

    def transform(self, X) -> np.ndarray:
        if self.reference is None:
            raise RuntimeError(f"{self.name}: fit() doit être appelé avant transform()")
        arr = np.asarray(X, dtype=float)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        return self._rows(arr - self.reference)

    def fit_transform(self, X) -> np.ndarray:
        return self.fit(X).transform(X)

    def _rows(self, diff: np.ndarray) -> np.ndarray:
        return np.array([self.compute(d, np.zeros_like(d)) for d in diff])


class EuclideanDistance(DistanceMetric):
    name = "euclidean"

    def compute(self, vector, reference) -> float:
        return float(np.linalg.norm(np.asarray(vector, dtype=float) - np.asarray(reference, dtype=float)))

    def _rows(self, diff):
        return np.linalg.norm(diff, axis=1)


class ManhattanDistance(DistanceMetric):
    name = "manhattan"

    def compute(self, vector, reference) -> float:
        return float(np.abs(np.asarray(vector, dtype=float) - np.asarray(reference, dtype=float)).sum())

    def _rows(self, diff):
        return np.abs(diff).sum(axis=1)


class MinkowskiDistance(DistanceMetric):
    name = "minkowski"

    def __init__(self, p: float = 3.0):
        super().__init__()
        if p < 1:
            raise InvalidConfiguration(f"minkowski: p doit être >= 1, reçu {p}")
        self.p = float(p)

    def compute(self, vector, reference) -> float:
        diff = np.abs(np.asarray(vector, dtype=float) - np.asarray(reference, dtype=float))
        return float((diff ** self.p).sum() ** (1.0 / self.p))

    def _rows(self, diff):
        return (np.abs(diff) ** self.p).sum(axis=1) ** (1.0 / self.p)


class HammingDistance(DistanceMetric):
    """
    Nombre de composantes qui diffèrent de la référence. La référence est le
    mode de chaque colonne (la plus petite valeur en cas d'égalité), adapté
    aux données de comptage creuses où la moyenne n'est jamais atteinte.
    """
    name = "hamming"

    def fit(self, X) -> "HammingDistance":
        arr = check_matrix(X)
        self.reference = np.asarray(stats.mode(arr, axis=0, keepdims=False).mode, dtype=float)
        return self

    def compute(self, vector, reference) -> float:
        return float(np.sum(np.asarray(vector, dtype=float) != np.asarray(reference, dtype=float)))

    def _rows(self, diff):
        return (diff != 0).sum(axis=1).astype(float)


class MahalanobisDistance(DistanceMetric):
    """
    Distance de Mahalanobis au carré, (x - mu)' S^-1 (x - mu), avec S la
    covariance empirique (ddof=1) de toute la table.

    Sans régularisation, exige au moins autant de lignes que de variables et
    une covariance singulière lève DegenerateCovariance. Avec
    `regularization` > 0 on inverse S + regularization * I.
    """
    name = "mahalanobis"

    def __init__(self, regularization: float = 0.0):
        super().__init__()
        if regularization < 0:
            raise InvalidConfiguration(f"mahalanobis: regularization doit être >= 0, reçu {regularization}")
        self.regularization = float(regularization)
        self.covariance: Optional[np.ndarray] = None
        self.precision: Optional[np.ndarray] = None

    def fit(self, X) -> "MahalanobisDistance":
        arr = check_matrix(X)
        n, p = arr.shape
        if n < p and self.regularization == 0:
            raise InsufficientData(f"mahalanobis: {n} lignes pour {p} variables; il faut au moins autant de lignes que de variables")
        self.reference = arr.mean(axis=0)
        cov = np.atleast_2d(np.cov(arr, rowvar=False, ddof=1))
        if self.regularization > 0:
            cov = cov + self.regularization * np.eye(p)
        rank = np.linalg.matrix_rank(cov)
        cond = np.linalg.cond(cov)
        if rank < p or not np.isfinite(cond) or cond > MAX_CONDITION_NUMBER:
            raise DegenerateCovariance(
                f"mahalanobis: covariance singulière (rang {rank}/{p}, conditionnement {cond:.3g}); "
                "retirer les variables constantes ou colinéaires, ou fixer regularization > 0"
            )
        self.covariance = cov
        self.precision = np.linalg.inv(cov)
        log.debug("mahalanobis: covariance %dx%d, conditionnement %.3g", p, p, cond)
        return self

    def compute(self, vector, reference) -> float:
        if self.precision is None:
            raise RuntimeError("mahalanobis: fit() doit être appelé avant compute()")
        diff = np.asarray(vector, dtype=float) - np.asarray(reference, dtype=float)
        # arrondi négatif possible sur une forme quadratique quasi nulle
        return max(float(diff @ self.precision @ diff), 0.0)

    def _rows(self, diff):
        if self.precision is None:
            raise RuntimeError("mahalanobis: fit() doit être appelé avant transform()")
        return np.clip(np.einsum("ij,jk,ik->i", diff, self.precision, diff), 0.0, None)


METRICS: Dict[str, Type[DistanceMetric]] = {
    "euclidean": EuclideanDistance,
    "mahalanobis": MahalanobisDistance,
    "manhattan": ManhattanDistance,
    "minkowski": MinkowskiDistance,
    "hamming": HammingDistance,
}


def get_metric(name: str, regularization: float = 0.0, minkowski_p: float = 3.0) -> DistanceMetric:
    key = str(name).strip().lower()
    if key not in METRICS:
        raise InvalidConfiguration(f"métrique inconnue '{name}'; choix possibles : {sorted(METRICS)}")
    if key == "mahalanobis":
        return MahalanobisDistance(regularization=regularization)
    if key == "minkowski":
        return MinkowskiDistance(p=minkowski_p)
    return METRICS[key]()
