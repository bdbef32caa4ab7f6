import pytest


@pytest.fixture
def no_geoip():
    async def lookup(target):
        return None

    return lookup
