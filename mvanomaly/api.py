
import logging
from typing import List, Literal, Optional

import numpy as np
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from mvanomaly.config import load_config
from mvanomaly.errors import InvalidConfiguration
from mvanomaly.etl import from_records, observation_matrix
from mvanomaly.scorers import get_scorer

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)

app = FastAPI(title="Anomaly Scoring API")


class ScoreRequest(BaseModel):
    rows: List[dict]
    ts_col: Optional[str] = None
    columns: Optional[List[str]] = None
    scorer: Literal["distance", "isolation_forest", "both"] = "both"
    config: dict = Field(default_factory=dict)


def _clean(x):
    # NaN n'est pas du JSON valide
    return None if x is None or (isinstance(x, float) and not np.isfinite(x)) else x


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/score")
def score(req: ScoreRequest):
    try:
        cfg = load_config(**req.config)
        df = from_records(req.rows, ts_col=req.ts_col)
        X, cols = observation_matrix(df, req.columns)
        names = ["distance", "isolation_forest"] if req.scorer == "both" else [req.scorer]
        results = {name: get_scorer(name, cfg).score(X) for name in names}
    except InvalidConfiguration as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    records = []
    for i, ts in enumerate(df["ds"]):
        rec = {"ds": ts.isoformat()}
        for name, res in results.items():
            rec[name] = {"raw": _clean(float(res.raw[i])), "metric": _clean(float(res.metric[i])),
                         "anomaly": bool(res.flags[i])}
        records.append(rec)
    log.info("score: %d lignes, %d variables, scoreurs=%s", len(records), len(cols), names)
    return {
        "variables": cols,
        "thresholds": {name: _clean(res.threshold) for name, res in results.items()},
        "fit": {k: _clean(v) for k, v in results["distance"].diagnostics().items()} if "distance" in results else None,
        "records": records,
    }
