import numpy as np
import pandas as pd

from typing import List

from transforms.numeric import numeric_column


def sort_by(frame: pd.DataFrame, fields: List[str]) -> pd.DataFrame:
    """
    Stable sort by each numeric field in turn, the last field ends up as the primary key.
    """
    for field in fields:
        order = np.argsort(numeric_column(frame, field).to_numpy(), kind="stable")
        frame = frame.iloc[order]
    return frame
