import json
from dataclasses import dataclass
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import redis

from tiercache.domain.errors import (
    BackingStoreError,
    ConflictExhaustedError,
    ConversionError,
    NotFoundError,
    ValidationError,
)
from tiercache.infrastructure.cache.redis_store import RedisStore


@dataclass
class Person:
    name: str
    age: int


@pytest.fixture
def mock_client():
    return MagicMock(spec=redis.Redis)

@pytest.fixture
def mock_pipe(mock_client):
    pipe = MagicMock()
    mock_client.pipeline.return_value.__enter__.return_value = pipe
    return pipe

@pytest.fixture
def redis_store(mock_client):
    return RedisStore(mock_client)


def test_client_is_required():
    with pytest.raises(ValidationError):
        RedisStore(None)

def test_set_writes_json_with_ttl(redis_store: RedisStore, mock_client: MagicMock):
    redis_store.set("p", Person("ann", 3), ttl=1.5)
    mock_client.set.assert_called_once_with("p", '{"name":"ann","age":3}', px=1500)

def test_set_without_ttl(redis_store: RedisStore, mock_client: MagicMock):
    redis_store.set("k", 1)
    mock_client.set.assert_called_once_with("k", "1", px=None)

def test_timestamps_and_complex_are_encoded(redis_store: RedisStore):
    stamp = datetime(2022, 3, 27, 18, 55, tzinfo=timezone.utc)
    payload = json.loads(redis_store.encode({"at": stamp, "z": complex(1, 2)}))
    assert payload == {"at": int(stamp.timestamp()) * 1000, "z": "(1+2i)"}

def test_get_decodes_and_reshapes(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.get.return_value = b'{"name":"ann","age":"3"}'
    assert redis_store.get("p", Person) == Person("ann", 3)
    assert redis_store.get("p") == {"name": "ann", "age": "3"}

def test_get_missing(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.get.return_value = None
    assert redis_store.try_get("k") == (False, None)

def test_get_invalid_payload(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.get.return_value = b"{not json"
    with pytest.raises(ConversionError):
        redis_store.get("k")

def test_create_uses_set_nx(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.set.side_effect = [True, None]
    assert redis_store.create("k", "v", ttl=10) is True
    assert redis_store.create("k", "v", ttl=10) is False
    mock_client.set.assert_called_with("k", '"v"', px=10000, nx=True)

def test_remove(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.delete.side_effect = [1, 0]
    assert redis_store.remove("k") is True
    assert redis_store.remove("k") is False

def test_increment_uses_watch_transaction(redis_store: RedisStore, mock_pipe: MagicMock):
    mock_pipe.get.return_value = b"5"
    mock_pipe.execute.return_value = [6]

    assert redis_store.increment("n") == 6
    mock_pipe.watch.assert_called_once_with("n")
    mock_pipe.multi.assert_called_once()
    mock_pipe.incr.assert_called_once_with("n")

def test_increment_retries_on_watch_error(redis_store: RedisStore, mock_pipe: MagicMock):
    mock_pipe.get.return_value = b"5"
    mock_pipe.execute.side_effect = [redis.WatchError(), [7]]

    assert redis_store.increment("n") == 7
    assert mock_pipe.watch.call_count == 2

def test_increment_exhausts_retries(mock_client: MagicMock, mock_pipe: MagicMock):
    store = RedisStore(mock_client, max_retries=3)
    mock_pipe.get.return_value = b"5"
    mock_pipe.execute.side_effect = redis.WatchError()

    with pytest.raises(ConflictExhaustedError) as exc_info:
        store.increment("n")
    assert exc_info.value.attempts == 3
    assert mock_pipe.execute.call_count == 3

def test_increment_missing_key(redis_store: RedisStore, mock_pipe: MagicMock):
    mock_pipe.get.return_value = None
    with pytest.raises(NotFoundError):
        redis_store.increment("n")
    mock_pipe.execute.assert_not_called()

def test_increment_non_integer(redis_store: RedisStore, mock_pipe: MagicMock):
    mock_pipe.get.return_value = b'"abc"'
    with pytest.raises(ConversionError):
        redis_store.increment("n")

def test_increment_or_create_expires_only_new_keys(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.incrby.side_effect = [4, 8]

    assert redis_store.increment_or_create("n", 4, ttl=30) == 4
    assert redis_store.increment_or_create("n", 4, ttl=30) == 8

    mock_client.pexpire.assert_called_once_with("n", 30000)

def test_increment_or_create_without_ttl(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.incrby.return_value = 1
    redis_store.increment_or_create("n", 1)
    mock_client.pexpire.assert_not_called()

def test_connection_errors_are_wrapped(redis_store: RedisStore, mock_client: MagicMock):
    mock_client.get.side_effect = redis.ConnectionError("down")
    with pytest.raises(BackingStoreError) as exc_info:
        redis_store.get("k")
    assert isinstance(exc_info.value.__cause__, redis.ConnectionError)

def test_from_url(mocker):
    from_url = mocker.patch("tiercache.infrastructure.cache.redis_store.redis.Redis.from_url")
    store = RedisStore.from_url("redis://cache:6379/1", max_retries=5)
    from_url.assert_called_once_with("redis://cache:6379/1")
    assert isinstance(store, RedisStore)
