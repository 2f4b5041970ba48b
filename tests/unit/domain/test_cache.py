from concurrent.futures import ThreadPoolExecutor

from py_budgeteer.domain.cache import FingerprintCache


def test_get_or_compute_memoizes():
    cache: FingerprintCache[int] = FingerprintCache()
    calls = []

    def factory() -> int:
        calls.append(1)
        return 42

    assert cache.get_or_compute(("fp", "EUR"), factory) == 42
    assert cache.get_or_compute(("fp", "EUR"), factory) == 42
    assert len(calls) == 1
    assert (cache.hits, cache.misses) == (1, 1)
    assert ("fp", "EUR") in cache
    assert cache.get(("fp", "USD")) is None


def test_clear_resets_values_and_counters():
    cache: FingerprintCache[str] = FingerprintCache()
    cache.get_or_compute("k", lambda: "v")
    cache.clear()
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (0, 0)


def test_concurrent_callers_compute_once():
    cache: FingerprintCache[int] = FingerprintCache()
    calls = []

    def factory() -> int:
        calls.append(1)
        return len(calls)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: cache.get_or_compute("same", factory), range(32)))
    assert set(results) == {1}
    assert len(calls) == 1
