# peercache

A small distributed in-memory cache. Each node keeps a size-bounded LRU
cache per named group. It finds the node that owns a key through a
consistent hash ring and fetches the value from that peer over HTTP. When
the node owns the key itself, or the peer request fails, it falls back to
the group's local loader. Concurrent loads of the same key run as a single
call.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Building blocks

- `peercache.lru.LRUCache`: an LRU cache bounded by the byte length of its
  keys plus `len(value)`. `max_bytes` of zero or less never evicts. The
  optional `on_evicted(key, value)` callback is called for each evicted
  entry. When a key is updated, the size counted for it stays the one
  recorded when it was first added. It is not thread-safe on its own.
- `peercache.string_lru.StringLRUCache`: the same cache for string values,
  guarded by a lock. `add` ignores empty keys and empty values, and `get`
  returns `""` for a missing key.
- `peercache.consistenthash.HashRing`: a consistent hash ring that places
  each node `replicas` times. It uses CRC-32 unless you pass your own
  `hash_func(bytes) -> int`. `get("")` returns `""`, and `get` on an empty
  ring raises `LookupError`.
- `peercache.singleflight.SingleFlight`: `do(key, fn)` runs `fn` once for
  a key. Callers that arrive while it runs wait for it and get the same
  result or the same exception.
- `peercache.byteview.ByteView`: an immutable view of cached bytes.
  `byte_slice()` returns a copy and `str()` decodes it as UTF-8.
- `peercache.group.Group`: a named cache namespace with a getter for
  misses. `new_group` creates a group and registers it, and `get_group`
  looks it up. `Group.get("")` raises `ValueError`. A cached empty value
  counts as a miss. `register_peers` may be called only once.

```python
from peercache.group import new_group, get_group

scores = {"Tom": "630", "Jack": "589", "Sam": "567"}

def load(key):
    if key in scores:
        return scores[key].encode()
    raise KeyError(f"{key} not exists")

new_group("scores", 2 << 10, load)
view = get_group("scores").get("Tom")
print(str(view))          # 630
```

```python
from peercache.consistenthash import HashRing

ring = HashRing(50, None)
ring.add("http://localhost:8001", "http://localhost:8002")
print(ring.get("Tom"))    # the node that owns "Tom"
```

```python
from peercache.singleflight import SingleFlight

flight = SingleFlight()
print(flight.do("Tom", lambda: "630"))   # 630
```

## Networking pieces

- `peercache.http_pool.HTTPPool` is a WSGI application. It serves
  `<base_path><group>/<key>`, where `base_path` comes from the
  configuration and defaults to `/_gocache/`.
  - `set(config, *addrs)` builds the ring from `config.server.replicas`,
    which must be positive.
  - `pick_peer(key)` returns an `HTTPGetter` for a remote owner, or `None`
    when this node owns the key.
  - `is_self(key)` tells whether this node owns the key.
  - `handle(method, path)` returns a `Response` without going through WSGI.
- `peercache.http_pool.auto_register` posts the node's address to the
  register center every `interval` seconds until `stop_event` is set. It
  raises `RegistrationError` when the center cannot be reached. An
  `HTTPPool` built with a config naming a register center starts it in a
  background thread. Pass `auto_register=False` to prevent this.
- `peercache.config.load_config(path)` reads the YAML configuration into
  `Config`, `ServerConfig` and `PretaskConfig`.
- `peercache.loaders`:
  - `create_loader(config)` picks the loader for `pre_task.data_type`
    (`json`, `file` or `db`; any other value raises `ValueError`).
  - `run_pretask(config, peer)` runs it and returns the groups created.

## Running a cluster

A node is configured by a YAML file (default `./config.yaml`):

```yaml
server:
  max_cache_bytes: 2048
  base_path: /_gocache/
  replicas: 50
  default_group: scores
  register_center: http://localhost:8000/register
preTask:
  data_type: json
  file_path: ./data.json
  dsn: ""
```

With `data_type: json`, the file at `file_path` lists the groups to
create. Each node puts into its own cache only the keys it owns:

```json
[
  {"group": "scores", "data": {"Tom": "630", "Jack": "589", "Sam": "567"}}
]
```

Start the register center. It listens on port 8000 at `/register`,
records each node that posts its address, and drops nodes that have been
silent for more than ten seconds:

```
peercache-register
```

Start the cache nodes on ports 8001, 8002 and 8003 (`--port` accepts only
these). Add `--api` to one of them to also serve the public API on
port 9999:

```
peercache --port 8001 --config ./config.yaml
peercache --port 8002 --config ./config.yaml
peercache --port 8003 --config ./config.yaml --api
```

Clients query the API:

```
curl "http://localhost:9999/api?group=scores&key=Tom"
```

If `group` is empty or left out, `default_group` from the configuration
is used. An unknown group gets a 404 response, and a failed lookup gets a
500 response with the error text.

## What it does not do

- The node addresses are fixed at `localhost` ports 8001 to 8003. The
  register center only records nodes. It does not tell nodes about each
  other, and the hash ring never changes while nodes run.
- Groups created by the JSON loader fall back to `peercache.group.DB`, an
  in-memory dictionary that starts empty. A key that was not preloaded on
  its owning node therefore fails with "not exists". Nothing is stored on
  disk.
- The `file` and `db` loaders create no groups, so with these data types a
  node serves no groups at all.
- If the register center cannot be reached, the registration thread stops
  with an error in the log. The node keeps serving.