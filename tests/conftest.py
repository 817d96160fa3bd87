from __future__ import annotations

import pytest

from call_monitor.countries import CountryDirectory


@pytest.fixture
def countries() -> CountryDirectory:
    return CountryDirectory(
        prefixes={"855": "KH", "972": "IL", "62": "ID", "1": "US"},
        names={"KH": "Cambodia", "IL": "Israel", "ID": "Indonesia", "US": "United States"},
    )
