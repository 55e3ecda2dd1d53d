"""Provider factory: returns fixture or live provider based on config.

In fixture mode, samples come from the JSON payload at SH_FIXTURE_PATH
(an empty payload when unset, which reports the data source unavailable).
In live mode, samples are fetched from the device bridge over HTTP.
Both implement the same SampleProvider protocol.
"""

from health.providers.protocol import SampleProvider
from shared.config import settings


def get_provider() -> SampleProvider:
    if settings.provider_mode == "live":
        from health.providers.live import HttpSampleProvider

        return HttpSampleProvider()
    return _get_fixture_provider()


def _get_fixture_provider() -> SampleProvider:
    from health.providers.fixture import FixtureSampleProvider

    if settings.fixture_path:
        return FixtureSampleProvider.from_file(settings.fixture_path)
    return FixtureSampleProvider()
