import sys
from typing import List

import numpy as np
import pytest
from loguru import logger

from geosample.models import DataPoint

END_TO_END_CSV = "lat,lon,value\n10,20,5\n11,21,6\n,,\n12,22,7"


@pytest.fixture(autouse=True)
def reset_logger():
    """Restore a plain stderr sink after tests that reconfigure loguru."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")


@pytest.fixture
def end_to_end_csv() -> str:
    return END_TO_END_CSV


def make_points(count: int, seed: int = 7) -> List[DataPoint]:
    """Random points spread over a regional box with values in [0, 30)."""
    rng = np.random.default_rng(seed)
    lats = rng.uniform(-40, 40, count)
    lons = rng.uniform(-120, 120, count)
    values = rng.uniform(0, 30, count)
    return [DataPoint(float(a), float(b), float(c)) for a, b, c in zip(lats, lons, values)]


def make_csv(rows: int) -> str:
    """CSV text with ``rows`` valid data rows."""
    lines = ["lat,lon,value"]
    for i in range(rows):
        lines.append(f"{-89 + i % 178},{-179 + i % 358},{i}")
    return "\n".join(lines)


@pytest.fixture
def sample_points() -> List[DataPoint]:
    return make_points(2000)
