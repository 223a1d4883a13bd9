import pytest

from wayfinder.logger import Logger
from wayfinder.tracker import NavigationTracker

from .fakes import MANUAL_TICKS, ORIGIN, FakeFeed, FakeSnapper


@pytest.fixture
def quiet_logger():
    return Logger(echo=False)


@pytest.fixture
def feed():
    return FakeFeed(ORIGIN)


@pytest.fixture
def snapper():
    return FakeSnapper()


@pytest.fixture
async def make_tracker(quiet_logger):
    """Build trackers that are shut down after the test"""
    created = []

    def factory(feed, snapper, router, **settings):
        tracker = NavigationTracker(
            feed, snapper, router, logger=quiet_logger,
            settings={**MANUAL_TICKS, **settings},
        )
        created.append(tracker)
        return tracker

    yield factory

    for tracker in created:
        await tracker.close()
