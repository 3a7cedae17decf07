import asyncio

from attraviso.models import Attraction
from attraviso.src.enrichment import enrich_attractions, enrich_within


def make_records(n):
    return [Attraction(id=f"node/{i}", name=f"n{i}", category="museum", latitude=0.0, longitude=0.0)
            for i in range(n)]


class CountingResolver:
    """Stands in for ImageResolver and tracks how many chains run at once."""

    def __init__(self, delay=0.01):
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.seen = []

    async def resolve(self, record):
        self.active += 1
        self.peak = max(self.peak, self.active)
        # finish in reverse-ish order so completion order differs from input order
        await asyncio.sleep(self.delay * (1 + (int(record.id.split("/")[1]) % 3)))
        self.active -= 1
        self.seen.append(record.id)
        record.set_image(f"https://img.example/{record.id}.jpg")
        return record


def test_enrichment_caps_items_and_bounds_concurrency():
    records = make_records(12)
    resolver = CountingResolver()
    out = asyncio.run(enrich_attractions(records, resolver, concurrency=3, max_items=8))
    assert out is records
    assert resolver.peak == 3
    assert sorted(resolver.seen) == sorted(r.id for r in records[:8])
    assert all(r.image_url for r in records[:8])
    assert all(r.image_url is None for r in records[8:])


def test_enrichment_keeps_order_and_identity():
    records = make_records(6)
    before = list(records)
    asyncio.run(enrich_attractions(records, CountingResolver(), concurrency=6, max_items=6))
    assert [id(r) for r in records] == [id(r) for r in before]
    assert [r.id for r in records] == [f"node/{i}" for i in range(6)]


def test_zero_cap_does_nothing():
    records = make_records(3)
    resolver = CountingResolver()
    asyncio.run(enrich_attractions(records, resolver, concurrency=2, max_items=0))
    assert resolver.seen == []


def test_deadline_returns_without_cancelling_workers():
    records = make_records(2)
    resolver = CountingResolver(delay=0.05)
    background = set()

    async def run():
        finished = await enrich_within(records, resolver, deadline=0.01, concurrency=2, max_items=2,
                                       background=background)
        snapshot = [r.image_url for r in records]
        pending = len(background)
        await asyncio.sleep(0.3)
        return finished, snapshot, pending

    finished, snapshot, pending = asyncio.run(run())
    assert finished is False
    assert snapshot == [None, None]
    assert pending == 1
    # the lookups kept running and completed after the caller moved on
    assert all(r.image_url for r in records)
    assert background == set()


def test_deadline_not_hit():
    records = make_records(2)
    finished = asyncio.run(enrich_within(records, CountingResolver(delay=0.001), deadline=5, concurrency=2))
    assert finished is True
    assert all(r.image_url for r in records)


class StartRecordingResolver:
    def __init__(self, delay):
        self.delay = delay
        self.started = []
        self.finished = []

    async def resolve(self, record):
        self.started.append(record.id)
        await asyncio.sleep(self.delay)
        self.finished.append(record.id)
        record.set_image(f"https://img.example/{record.id}.jpg")
        return record


def test_no_new_lookups_start_after_deadline():
    records = make_records(10)
    resolver = StartRecordingResolver(delay=0.05)
    background = set()

    async def run():
        finished = await enrich_within(records, resolver, deadline=0.06, concurrency=2, max_items=10,
                                       background=background)
        started_at_deadline = list(resolver.started)
        await asyncio.sleep(0.3)
        return finished, started_at_deadline

    finished, started_at_deadline = asyncio.run(run())
    assert finished is False
    assert 0 < len(started_at_deadline) < 10
    # chains that were already running completed; nothing new was picked up
    assert resolver.started == started_at_deadline
    assert sorted(resolver.finished) == sorted(started_at_deadline)
    assert all(r.image_url is None for r in records if r.id not in started_at_deadline)
    assert background == set()