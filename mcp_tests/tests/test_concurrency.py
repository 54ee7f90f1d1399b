import threading

from core.cache import Cache

# Sweep policy with explicit sweep() calls standing in for the background worker.


def _run_all(targets):
    threads = [threading.Thread(target=t) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def test_update_wins_over_concurrent_stale_sweep(clock):
    c = Cache(100, autostart=False)

    for i in range(200):
        key = f"k{i}"
        clock["now"] = 0.0
        c.update(key, "old")

        # Old timestamp is past the TTL; the new write lands at "now".
        clock["now"] = 1.0
        barrier = threading.Barrier(2)

        def writer():
            barrier.wait()
            c.update(key, "new")

        def evictor():
            barrier.wait()
            c.sweep()

        _run_all([writer, evictor])
        assert c.get(key) == "new"


def test_update_wins_over_concurrent_read_expiry(clock):
    c = Cache(100, autostart=False)

    for i in range(200):
        key = f"k{i}"
        clock["now"] = 0.0
        c.update(key, "old")
        clock["now"] = 1.0
        barrier = threading.Barrier(2)

        def writer():
            barrier.wait()
            c.update(key, "new")

        observed = []

        def reader():
            barrier.wait()
            observed.append(c.get(key))

        _run_all([writer, reader])
        assert observed[0] in (None, "new")
        assert c.get(key) == "new"


def test_parallel_writers_on_distinct_keys():
    c = Cache(60_000, shards=8, autostart=False)
    errors = []

    def work(worker: int):
        def _run():
            for i in range(500):
                key = f"w{worker}-{i}"
                c.update(key, (worker, i))
                if c.get(key) != (worker, i):
                    errors.append(key)
        return _run

    _run_all([work(w) for w in range(8)])

    assert errors == []
    assert c.stats.size == 8 * 500


def test_parallel_mixed_ops_on_one_key():
    c = Cache(60_000, autostart=False)
    seen = []

    def writer(tag: str):
        def _run():
            for i in range(300):
                c.update("shared", (tag, i))
        return _run

    def deleter():
        for _ in range(300):
            c.delete("shared")

    def reader():
        for _ in range(300):
            value = c.get("shared")
            if value is not None:
                seen.append(value)

    _run_all([writer("a"), writer("b"), deleter, reader])

    # Every observed value is one a writer actually stored.
    assert all(tag in ("a", "b") and 0 <= i < 300 for tag, i in seen)
    c.update("shared", ("final", 0))
    assert c.get("shared") == ("final", 0)
    assert c.stats.size == 1
