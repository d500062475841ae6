# test/test_annotations.py
import threading

import pytest

from olscapture.core import AnnotationIndex, ChannelAnnotation, InvalidIndex


def test_annotation_contains_and_overlaps_are_inclusive():
    a = ChannelAnnotation(start=10, end=20, data="x")
    assert a.contains(10) and a.contains(20)
    assert not a.contains(9) and not a.contains(21)

    assert a.overlaps(20, 30)
    assert a.overlaps(0, 10)
    assert a.overlaps(12, 15)
    assert not a.overlaps(21, 30)
    assert not a.overlaps(0, 9)


def test_get_annotation_returns_first_by_insertion_order():
    idx = AnnotationIndex()
    idx.add(0, 0, 100, "wide")
    idx.add(0, 10, 20, "narrow")

    assert idx.get_annotation(0, 15).data == "wide"
    assert idx.get_annotation(0, 101) is None
    assert idx.get_annotation(1, 15) is None


def test_get_annotations_returns_all_overlapping_in_order():
    idx = AnnotationIndex()
    idx.add(3, 0, 5, "a")
    idx.add(3, 4, 8, "b")
    idx.add(3, 20, 30, "c")
    idx.add(3, 4, 8, "b")  # duplicates are kept

    found = [a.data for a in idx.get_annotations(3, 5, 10)]
    assert found == ["a", "b", "b"]


def test_get_annotations_is_a_snapshot_at_call_time():
    idx = AnnotationIndex()
    idx.add(0, 0, 10, 1)
    it = idx.get_annotations(0, 0, 10)
    idx.add(0, 0, 10, 2)

    assert [a.data for a in it] == [1]
    assert [a.data for a in idx.get_annotations(0, 0, 10)] == [1, 2]


def test_clear_and_counts():
    idx = AnnotationIndex()
    idx.add(0, 0, 1, None)
    idx.add(0, 2, 3, None)
    idx.add(31, 0, 1, None)

    assert idx.count(0) == 2
    assert len(idx) == 3

    idx.clear(0)
    assert idx.count(0) == 0
    assert len(idx) == 1

    idx.clear_all()
    assert len(idx) == 0


@pytest.mark.parametrize("channel", [-1, 32])
def test_channel_bounds(channel):
    idx = AnnotationIndex()
    with pytest.raises(InvalidIndex):
        idx.add(channel, 0, 1, None)
    with pytest.raises(InvalidIndex):
        idx.get_annotation(channel, 0)
    with pytest.raises(InvalidIndex):
        idx.get_annotations(channel, 0, 1)
    with pytest.raises(InvalidIndex):
        idx.clear(channel)


def test_concurrent_writers_on_one_channel():
    idx = AnnotationIndex()
    n_threads, per_thread = 8, 500

    def writer(tid):
        for i in range(per_thread):
            idx.add(7, i, i, (tid, i))

    threads = [threading.Thread(target=writer, args=(t,)) for t in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert idx.count(7) == n_threads * per_thread
    # Per writer, arrival order is preserved
    for tid in range(n_threads):
        seq = [a.data[1] for a in idx.get_annotations(7, 0, per_thread) if a.data[0] == tid]
        assert seq == list(range(per_thread))
