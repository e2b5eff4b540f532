import numpy as np
import pytest

from slai.tensor_cache import (
    BufferUsage,
    CachedTensor,
    Ordering,
    TensorCache,
    TensorKey,
)

STORAGE = BufferUsage.STORAGE


def test_key_pads_shape_to_four_dims():
    key = TensorKey.of(np.zeros((2, 3), dtype=np.float32), STORAGE)
    assert key.shape == (2, 3, 1, 1)
    assert key.dtype == np.dtype(np.float32)
    assert key.ordering is Ordering.ROW_MAJOR


def test_key_detects_column_major():
    arr = np.asfortranarray(np.zeros((2, 3), dtype=np.float32))
    assert TensorKey.of(arr, STORAGE).ordering is Ordering.COLUMN_MAJOR


def test_key_rejects_five_dims():
    with pytest.raises(ValueError):
        TensorKey.of(np.zeros((1, 1, 1, 1, 1)), STORAGE)


def test_keys_equal_for_matching_tensors():
    a = TensorKey.of(np.zeros((4, 4), dtype=np.float32), STORAGE)
    b = TensorKey(np.float32, (4, 4), Ordering.ROW_MAJOR, STORAGE)
    assert a == b
    assert hash(a) == hash(b)


def test_get_on_empty_cache_returns_none():
    cache = TensorCache()
    key = TensorKey(np.float32, (4,), Ordering.ROW_MAJOR, STORAGE)
    assert cache.get(key) is None


def test_release_then_get_returns_same_tensor():
    cache = TensorCache()
    arr = np.zeros((4,), dtype=np.float32)
    handle = cache.enroll(arr, STORAGE)
    handle.release()
    assert len(cache) == 1
    again = cache.get(TensorKey.of(arr, STORAGE))
    assert again.tensor() is arr
    assert len(cache) == 0
    again.into_inner()


def test_get_or_insert_creates_only_when_empty():
    cache = TensorCache()
    key = TensorKey(np.float32, (8,), Ordering.ROW_MAJOR, STORAGE)
    calls = []

    def make():
        calls.append(1)
        return np.zeros((8,), dtype=np.float32)

    first = cache.get_or_insert(key, make)
    created = first.tensor()
    first.release()
    second = cache.get_or_insert(key, make)
    assert second.tensor() is created
    assert len(calls) == 1
    second.into_inner()


def test_get_or_insert_propagates_insert_error():
    cache = TensorCache()
    key = TensorKey(np.float32, (8,), Ordering.ROW_MAJOR, STORAGE)

    def fail():
        raise OSError("no device memory")

    with pytest.raises(OSError):
        cache.get_or_insert(key, fail)


def test_usage_separates_buckets():
    cache = TensorCache()
    arr = np.zeros((4,), dtype=np.float32)
    cache.enroll(arr, BufferUsage.UNIFORM).release()
    assert cache.get(TensorKey.of(arr, STORAGE)) is None
    found = cache.get(TensorKey.of(arr, BufferUsage.UNIFORM))
    assert found.tensor() is arr
    found.into_inner()


def test_into_inner_does_not_reclaim():
    cache = TensorCache()
    arr = np.ones((3,), dtype=np.float32)
    handle = cache.enroll(arr, STORAGE)
    assert handle.into_inner() is arr
    handle.release()
    assert len(cache) == 0


def test_tensor_after_release_raises():
    cache = TensorCache()
    handle = cache.enroll(np.zeros((2,)), STORAGE)
    handle.release()
    with pytest.raises(RuntimeError):
        handle.tensor()


def test_release_twice_reclaims_once():
    cache = TensorCache()
    handle = cache.enroll(np.zeros((2,)), STORAGE)
    handle.release()
    handle.release()
    assert len(cache) == 1


def test_context_manager_releases():
    cache = TensorCache()
    arr = np.zeros((5,), dtype=np.float32)
    with cache.enroll(arr, STORAGE) as inner:
        assert inner is arr
        assert len(cache) == 0
    assert len(cache) == 1


def test_dropping_handle_reclaims():
    cache = TensorCache()
    arr = np.zeros((6,), dtype=np.float32)
    handle = cache.enroll(arr, STORAGE)
    assert isinstance(handle, CachedTensor)
    del handle
    assert len(cache) == 1


def test_clear_empties_cache():
    cache = TensorCache()
    cache.enroll(np.zeros((2,)), STORAGE).release()
    cache.enroll(np.zeros((3,)), STORAGE).release()
    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0