# mvanomaly/config.py
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mvanomaly.distances import METRICS
from mvanomaly.errors import InvalidConfiguration


class AnalysisConfig(BaseSettings):
    """
    Paramètres d'une analyse. Les valeurs par défaut peuvent être surchargées
    par variables d'environnement (MVA_METRIC, MVA_TAIL_PROBABILITY, ...).
    """
    model_config = SettingsConfigDict(env_prefix="MVA_", extra="forbid", validate_assignment=True)

    metric: str = "euclidean"
    tail_probability: float = Field(0.001, gt=0, lt=1)
    quantile: float = Field(0.99, gt=0, lt=1)
    sample_size: int = Field(256, ge=2)
    n_trees: int = Field(100, ge=1)
    random_seed: int = Field(42, ge=0)
    regularization: float = Field(0.0, ge=0)
    minkowski_p: float = Field(3.0, ge=1)
    n_jobs: Optional[int] = None

    @field_validator("metric")
    @classmethod
    def _known_metric(cls, v: str) -> str:
        key = v.strip().lower()
        if key not in METRICS:
            raise ValueError(f"métrique inconnue '{v}'; choix possibles : {sorted(METRICS)}")
        return key

    def __setattr__(self, name, value):
        try:
            super().__setattr__(name, value)
        except ValidationError as e:
            raise InvalidConfiguration(str(e)) from e


def load_config(**overrides) -> AnalysisConfig:
    """Construit la configuration, en convertissant les erreurs pydantic en InvalidConfiguration."""
    try:
        return AnalysisConfig(**overrides)
    except ValidationError as e:
        raise InvalidConfiguration(str(e)) from e


def resolve_config(config: Optional[AnalysisConfig] = None, **overrides) -> AnalysisConfig:
    if config is None:
        return load_config(**overrides)
    if not overrides:
        return config
    return load_config(**{**config.model_dump(), **overrides})
