from __future__ import annotations

import math
from typing import Optional

import numpy as np

from mipsat.model.integer_model import IntegerHint
from mipsat.model.models import SolutionHint


def project_hint(
    hint: Optional[SolutionHint], scaling: np.ndarray, max_bound: float
) -> Optional[IntegerHint]:
    """
    Map a sparse hint into the scaled integer space

    Entries past the end of the scaling vector are dropped; values are scaled, clamped to +/- max_bound and rounded
    Lossy on purpose: a hint only guides the search, it never constrains it
    """
    if hint is None:
        return None

    var_index: list[int] = []
    var_value: list[int] = []
    for var, value in zip(hint.var_index, hint.var_value):
        if var >= len(scaling):
            continue
        scaled = value * scaling[var]
        if abs(scaled) > max_bound:
            scaled = max_bound if scaled > 0 else -max_bound
        var_index.append(int(var))
        # Half away from zero
        var_value.append(int(math.copysign(math.floor(abs(scaled) + 0.5), scaled)))
    return IntegerHint(var_index=var_index, var_value=var_value)
