# fbwatch

Tools used alongside a Fluent Bit deployment:

- **File watching** for files and directories (one level deep). `EventWatcher`
  uses native filesystem notifications through `watchdog`; `PollingWatcher`
  compares `os.stat` snapshots at a fixed interval and works anywhere.
- **Manifest builders** that produce the Kubernetes DaemonSet, ServiceAccount and
  RBAC objects for running Fluent Bit, as plain dictionaries ready to be dumped to
  YAML or JSON.
- Small **string-list helpers**.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Watching files

Both watchers deliver `fbwatch.poller.Event` objects (with `name` and `op`
fields) on a `queue.Queue` returned by `events()`, and errors on the queue
returned by `errors()`. Both are context managers that call `close()` on exit.

```python
from fbwatch.filenotify import new_watcher

with new_watcher(0.5) as watcher:
    watcher.add("/fluent-bit/config")
    event = watcher.events().get()
    print(event.op, event.name)
```

`new_watcher(interval)` creates an `EventWatcher` and, if that raises `OSError`,
returns a `PollingWatcher` checking every `interval` seconds instead. Either can
be created directly with `new_event_watcher()` or `new_polling_watcher(interval)`.

For a watched directory, events name the changed entry inside it (the directory
path joined with the entry name); for a watched file, the event names the path
as it was passed to `add()`.

### Event kinds

`fbwatch.poller.Op` is a flag enum with `CREATE`, `WRITE`, `REMOVE`, `RENAME`
and `CHMOD`.

- `PollingWatcher` reports `CREATE`, `REMOVE`, `CHMOD` (mode changed) and
  `WRITE` (modification time or size changed). Changes to subdirectories inside a
  watched directory are reported only when they appear or disappear.
- `EventWatcher` reports `CREATE`, `WRITE`, `REMOVE` and `RENAME`; a rename is
  reported as `RENAME` on the old path followed by `CREATE` on the new one.
  Modifications of directories themselves are not reported.

### The polling watcher

```python
from fbwatch.poller import PollingWatcher, Op

with PollingWatcher(1.0) as poller:
    poller.add("/var/log/app.log")
    while True:
        event = poller.events().get()
        if event.op is Op.WRITE:
            print("changed:", event.name)
```

- The interval must be positive, otherwise `ValueError` is raised.
- Adding a path that does not exist raises `FileNotFoundError`; adding the same
  path twice raises `WatchExistsError`.
- Removing a path that is not watched raises `NoSuchWatchError`.
- `add()` and `remove()` after `close()` raise `PollerClosedError`; calling
  `close()` again does nothing.
- `OSError`s met while reading a watched path are put on the `errors()` queue and
  polling continues.

`check_change(before, after)` compares two `os.stat` results (either may be
`None`) and returns the `Op` for the change, or `Op(0)` for none.

### The event watcher

`EventWatcher.add()` raises `FileNotFoundError` for a missing path and ignores a
path that is already watched. `remove()` raises `NoSuchWatchError` for a path
that is not watched. After `close()`, `add()` and `remove()` raise
`RuntimeError`.

## Building manifests

```python
from fbwatch.daemonset import FluentBit, make_daemon_set, make_rbac_objects

fb = FluentBit(
    name="fluent-bit",
    namespace="logging",
    labels={"app": "fluent-bit"},
    image="kubesphere/fluent-bit:v1.8.3",
    fluent_bit_config_name="fluent-bit-config",
)

daemon_set = make_daemon_set(fb, "/var/lib/docker/containers")
cluster_role, service_account, binding = make_rbac_objects("fluent-bit", "logging")
```

`make_daemon_set(fb, log_path)` builds a DaemonSet whose `fluent-bit` container
exposes a `metrics` port 2020, sets `NODE_NAME` from the node name, and mounts:

- `log_path` from the host, read-only, at the same path;
- the Secret named by `fluent_bit_config_name` at `/fluent-bit/config`;
- the host's `/var/log` and `/var/log/journal`;
- `position_db`, when given, as the volume source mounted at `/fluent-bit/tail`;
- each name in `secrets` as a Secret volume at `/fluent-bit/secrets/<name>`.

Optional fields of `FluentBit` that are empty are left out of the manifest.

`make_rbac_objects` returns a ClusterRole, ServiceAccount and ClusterRoleBinding;
`make_scoped_rbac_objects` returns a namespaced Role, ServiceAccount and
RoleBinding. The role is named `kubesphere:fluent-bit` and allows `get` on pods.

## String helpers

```python
from fbwatch.strutil import contain_string, remove_string, concat_string

contain_string(["a", "b"], "b")       # True
remove_string(["a", "b", "a"], "a")   # ["b"]
concat_string(["a", "b", "c"], ",")   # "a,b,c"
```

Each accepts `None` in place of the list.

## What this package does not do

It only builds manifests as dictionaries; it does not talk to a Kubernetes
cluster, apply or reconcile objects, or run as a controller. It has no
command-line tool.