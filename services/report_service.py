from typing import Dict, Sequence

import pandas as pd

from core.models import AhpResult, Criterion, TopsisDetail, TopsisResult, order_criteria


def ahp_table(criteria: Sequence[Criterion], result: AhpResult) -> pd.DataFrame:
    rows = [
        {
            "code": c.code,
            "criterion": c.name,
            "type": c.type.value,
            "weight": result.weights.get(c.id, 0.0),
        }
        for c in order_criteria(criteria)
    ]
    return pd.DataFrame(rows, columns=["code", "criterion", "type", "weight"])


def ahp_summary(result: AhpResult) -> Dict[str, object]:
    return {
        "lambda_max": result.lambda_max,
        "ci": result.ci,
        "cr": result.cr,
        "is_consistent": result.is_consistent,
    }


def ranking_table(results: Sequence[TopsisResult]) -> pd.DataFrame:
    rows = [
        {
            "rank": r.rank,
            "code": r.alternative_code,
            "alternative": r.alternative_name,
            "score": r.score,
            "d_plus": r.d_plus,
            "d_minus": r.d_minus,
        }
        for r in results
    ]
    df = pd.DataFrame(rows, columns=["rank", "code", "alternative", "score", "d_plus", "d_minus"])
    return df.sort_values("rank", kind="stable").reset_index(drop=True)


def topsis_tables(detail: TopsisDetail) -> Dict[str, pd.DataFrame]:
    """
    X, R and Y as alternatives x criteria frames indexed by codes,
    plus the ideal solutions per criterion and the distances per alternative.
    """
    alt_codes = [a.code for a in detail.alternatives]
    crit_codes = [c.code for c in detail.criteria]

    def frame(values) -> pd.DataFrame:
        return pd.DataFrame(values, index=pd.Index(alt_codes, name="alternative"), columns=crit_codes)

    ideals = pd.DataFrame(
        {
            "criterion": crit_codes,
            "type": [c.type.value for c in detail.criteria],
            "weight": detail.weights or [None] * len(crit_codes),
            "pos_ideal": detail.ideal_positive,
            "neg_ideal": detail.ideal_negative,
        }
    )
    distances = pd.DataFrame(
        {
            "alternative": alt_codes,
            "d_plus": detail.distances_plus,
            "d_minus": detail.distances_minus,
        }
    )

    return {
        "decision": frame(detail.decision_matrix),
        "normalized": frame(detail.normalized_matrix),
        "weighted": frame(detail.weighted_matrix),
        "ideals": ideals,
        "distances": distances,
    }


def to_csv_bytes(df: pd.DataFrame, index: bool = False) -> bytes:
    return df.to_csv(index=index).encode("utf-8")
