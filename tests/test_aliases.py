"""Tests for the in-memory alias table."""

import threading

from aliases import AliasTable


def test_starts_empty():
    table = AliasTable()
    assert len(table) == 0
    assert table.get("go") is None


def test_set_then_get():
    table = AliasTable()
    assert table.set("go", "https://golang.org") is None
    assert table.get("go") == "https://golang.org"
    assert len(table) == 1


def test_last_write_wins():
    table = AliasTable()
    table.set("go", "https://golang.org")
    assert table.set("go", "https://go.dev") == "https://golang.org"
    assert table.get("go") == "https://go.dev"
    assert len(table) == 1


def test_concurrent_writers():
    table = AliasTable()
    n_threads, per_thread = 8, 250
    start = threading.Barrier(n_threads)

    def writer(worker):
        start.wait()
        for i in range(per_thread):
            table.set(f"{worker}-{i}", f"https://example.com/{worker}/{i}")
            table.set("shared", f"https://example.com/{worker}")

    threads = [threading.Thread(target=writer, args=(w,)) for w in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(table) == n_threads * per_thread + 1
    assert table.get("3-17") == "https://example.com/3/17"
    assert table.get("shared") in {f"https://example.com/{w}" for w in range(n_threads)}
