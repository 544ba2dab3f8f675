from __future__ import annotations

import string
from typing import Sequence

from citybikebot.config.models import MAX_LABELLED_RESULTS
from citybikebot.errors import InvalidArgument, TooManyResults
from citybikebot.schemas.core import LabelledStation, RankedStation


LABELS = string.ascii_uppercase
ONE_DAY_S = 86400


def top_k(ranked: Sequence[RankedStation], k: int) -> list[LabelledStation]:
    """Label the `k` nearest stations A, B, C, ... in rank order."""

    if k <= 0:
        raise InvalidArgument(f"k must be positive: {k}")
    if k > MAX_LABELLED_RESULTS:
        raise TooManyResults(f"Cannot label more than {MAX_LABELLED_RESULTS} stations: {k}")
    return [LabelledStation(label=LABELS[i], ranked=r) for i, r in enumerate(ranked[:k])]


def format_walking_time(seconds: int) -> str:
    if seconds >= ONE_DAY_S:
        return "too long"
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
