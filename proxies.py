"""
Observation proxies that mirror a live object graph to the debugger.

An observed view behaves like the object it wraps for reads and writes, but
every write that changes a value is reported through a callback, tagged with
the request id the graph belongs to and the dotted path of the field. Nested
composites are wrapped lazily on first read, so the cost of observation is
only paid for the parts of the graph the app actually touches.

Three kinds of views exist:

- ObservedObject wraps instances with attributes (plain objects, pydantic
  models, dataclasses).
- ObservedDict wraps dicts and is a MutableMapping.
- ObservedList wraps lists and is a MutableSequence.

Views never end up inside the observed graph. Child views are cached in a
side table owned by the Observer, and values written through a view are
stored with any views inside them replaced by their targets, so the app's
own objects stay plain and serializable.

Views report their target's class through ``__class__``, so isinstance checks
in app code keep working against the wrapped type.
"""
import copy
import dataclasses
import datetime
import inspect
import types
from collections.abc import Mapping, MutableMapping, MutableSequence, Set
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel

# (request_id, key, value, path)
UpdateCallback = Callable[[str, str, Any, str], None]

CIRCULAR = "[Circular]"
# Never wrapped, always reported by value.
LEAF_TYPES = (datetime.date, datetime.time, datetime.timedelta)
SCALAR_TYPES = (str, bytes, bytearray, int, float, complex, bool, type(None))


def join_path(base: str, key: Any) -> str:
    return f"{base}.{key}" if base else str(key)


def is_observed(value: Any) -> bool:
    """The identity probe: True for any observed view."""
    return getattr(type(value), "__is_observed__", False) is True


def unwrap(value: Any) -> Any:
    """Returns the object behind a view, or the value itself."""
    return value._observed_target if is_observed(value) else value


def strip_views(value: Any, _seen: Optional[set] = None) -> Any:
    """
    Returns `value` with every view inside it replaced by its target.

    Dicts and lists are fixed in place so references the caller holds stay
    valid; a tuple holding views is rebuilt.
    """
    value = unwrap(value)
    if _seen is None:
        _seen = set()
    if id(value) in _seen:
        return value
    if isinstance(value, dict):
        _seen.add(id(value))
        for key, item in value.items():
            stripped = strip_views(item, _seen)
            if stripped is not item:
                value[key] = stripped
    elif isinstance(value, list):
        _seen.add(id(value))
        for index, item in enumerate(value):
            stripped = strip_views(item, _seen)
            if stripped is not item:
                value[index] = stripped
    elif type(value) is tuple:
        _seen.add(id(value))
        items = tuple(strip_views(item, _seen) for item in value)
        if any(new is not old for new, old in zip(items, value)):
            return items
    return value


def materialize(
    value: Any,
    opaque_types: tuple = (),
    ignored_properties: Iterable[str] = (),
    _seen: frozenset = frozenset(),
) -> Any:
    """
    Produces a detached, JSON-safe copy of a value.

    Views are unwrapped, dates become ISO strings, models and objects become
    dicts of their fields and sequences become lists. A container that
    contains itself is cut with the "[Circular]" marker. Opaque types are
    reported by their repr so back-references don't drag whole subsystems
    into a message.
    """
    value = unwrap(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, SCALAR_TYPES):
        return value
    if isinstance(value, LEAF_TYPES):
        return value.isoformat() if hasattr(value, "isoformat") else str(value)
    if opaque_types and isinstance(value, opaque_types):
        return repr(value)
    if id(value) in _seen:
        return CIRCULAR

    seen = _seen | {id(value)}

    def snapshot(item: Any) -> Any:
        return materialize(item, opaque_types, ignored_properties, seen)

    if isinstance(value, Mapping):
        return {str(key): snapshot(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, Set)):
        return [snapshot(item) for item in value]
    if isinstance(value, BaseModel):
        fields = type(value).model_fields
        return {name: snapshot(getattr(value, name)) for name in fields if name not in ignored_properties}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: snapshot(getattr(value, field.name))
            for field in dataclasses.fields(value)
            if field.name not in ignored_properties
        }
    if hasattr(value, "__dict__") and not _is_callable_leaf(value):
        return {
            key: snapshot(item)
            for key, item in vars(value).items()
            if not key.startswith("_") and key not in ignored_properties
        }
    return repr(value)


def deep_equal(previous: Any, value: Any, opaque_types: tuple = (), _seen: frozenset = frozenset()) -> bool:
    """
    Structural equality of two values, ignoring views.

    Types must match at every level, so 1 and True, a tuple and a list with
    the same items, or an object and a dict of its fields are all different.
    Opaque types are only equal to themselves.
    """
    previous, value = unwrap(previous), unwrap(value)
    if previous is value:
        return True
    if type(previous) is not type(value):
        return False
    if isinstance(previous, SCALAR_TYPES + LEAF_TYPES):
        return previous == value
    if opaque_types and isinstance(previous, opaque_types):
        return False
    pair = (id(previous), id(value))
    if pair in _seen:
        return True
    seen = _seen | {pair}

    if isinstance(previous, Mapping):
        return previous.keys() == value.keys() and all(
            deep_equal(previous[key], value[key], opaque_types, seen) for key in previous
        )
    if isinstance(previous, (list, tuple)):
        return len(previous) == len(value) and all(
            deep_equal(a, b, opaque_types, seen) for a, b in zip(previous, value)
        )
    if isinstance(previous, Set):
        return previous == value
    if hasattr(previous, "__dict__") and not _is_callable_leaf(previous):
        return deep_equal(vars(previous), vars(value), opaque_types, seen)
    return previous == value


def _is_callable_leaf(value: Any) -> bool:
    return inspect.isroutine(value) or inspect.isclass(value) or inspect.ismodule(value)


def _is_frozen(target: Any) -> bool:
    params = getattr(type(target), "__dataclass_params__", None)
    if params is not None and params.frozen:
        return True
    return isinstance(target, BaseModel) and bool(target.model_config.get("frozen"))


def _is_writable_attribute(target: Any, name: str) -> bool:
    """True if `name` is a plain data slot of `target` that can be reassigned."""
    if _is_frozen(target):
        return False
    if name in getattr(target, "__dict__", {}):
        return True
    return isinstance(inspect.getattr_static(type(target), name, None), types.MemberDescriptorType)


class Observer:
    """
    State shared by every view that descends from one observed root.

    Holds the request id, the update callback, the wrapping policy and the
    wrap registry. The registry maps a slot of the graph (the container's
    identity plus the key) to the view handed out for the value in it, so
    reading the same slot twice returns the same view without the view ever
    being stored in the container.
    """

    def __init__(
        self,
        request_id: str,
        on_update: UpdateCallback,
        ignored_properties: Iterable[str] = (),
        opaque_types: Iterable[type] = (),
    ):
        self.request_id = request_id
        self.on_update = on_update
        self.ignored_properties = frozenset(ignored_properties)
        self.opaque_types = tuple(opaque_types)
        # (id(container), key) -> (container, child, view). Both objects are
        # kept alive so their ids can't be reused while the entry exists.
        self._registry: dict[tuple[int, Any], tuple[Any, Any, "ObservedView"]] = {}

    def should_wrap(self, key: str, value: Any) -> bool:
        if is_observed(value) or isinstance(value, SCALAR_TYPES):
            return False
        if key in self.ignored_properties:
            return False
        if isinstance(value, LEAF_TYPES) or isinstance(value, self.opaque_types):
            return False
        if _is_callable_leaf(value):
            return False
        if isinstance(value, (dict, list)):
            return True
        return hasattr(value, "__dict__") or bool(getattr(type(value), "__slots__", None))

    def wrap(self, target: Any, path: str) -> "ObservedView":
        if is_observed(target):
            return target
        if isinstance(target, dict):
            return ObservedDict(target, self, path)
        if isinstance(target, list):
            return ObservedList(target, self, path)
        return ObservedObject(target, self, path)

    def child_view(self, container: Any, key: Any, child: Any, path: str) -> "ObservedView":
        """Returns the cached view for `container[key]`, wrapping it on first read."""
        slot = (id(container), key)
        entry = self._registry.get(slot)
        if entry is not None and entry[0] is container and entry[1] is child:
            return entry[2]
        view = self.wrap(child, path)
        self._registry[slot] = (container, child, view)
        return view

    def notify(self, key: str, previous: Any, value: Any, path: str) -> None:
        """Reports a write unless it left the value deeply unchanged."""
        if key in self.ignored_properties or deep_equal(previous, value, self.opaque_types):
            return
        self.emit(key, value, path)

    def emit(self, key: str, value: Any, path: str) -> None:
        snapshot = materialize(value, self.opaque_types, self.ignored_properties)
        self.on_update(self.request_id, key, snapshot, path)


class ObservedView:
    """Common behaviour of all views. Not instantiated directly."""

    __is_observed__ = True
    __slots__ = ("_observed_target", "_observed_by", "_observed_path")

    def __init__(self, target: Any, observer: Observer, path: str):
        object.__setattr__(self, "_observed_target", target)
        object.__setattr__(self, "_observed_by", observer)
        object.__setattr__(self, "_observed_path", path)

    def _observed_class(self) -> type:
        return type(self._observed_target)

    __class__ = property(_observed_class)

    def _observe_child(self, key: Any, value: Any, writable: bool = True) -> Any:
        """
        Wraps a value that was just read from the target.

        Writable slots get the same view on every read as long as they hold
        the same object. Non-writable ones get a fresh view each time.
        """
        observer = self._observed_by
        if not observer.should_wrap(str(key), value):
            return value
        path = join_path(self._observed_path, key)
        if not writable:
            return observer.wrap(value, path)
        return observer.child_view(self._observed_target, key, value, path)

    def __eq__(self, other: Any) -> bool:
        return self._observed_target == unwrap(other)

    def __ne__(self, other: Any) -> bool:
        return not self == other

    def __copy__(self) -> Any:
        return copy.copy(self._observed_target)

    def __deepcopy__(self, memo: dict) -> Any:
        return copy.deepcopy(self._observed_target, memo)

    def __repr__(self) -> str:
        return repr(self._observed_target)

    def __str__(self) -> str:
        return str(self._observed_target)


class ObservedObject(ObservedView):
    """View of an object whose state lives in attributes."""

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        target = self._observed_target
        value = getattr(target, name)
        if name.startswith("__") and name.endswith("__"):
            return value
        # Methods run against the view so their writes are observed. pydantic's
        # own methods need the real instance.
        if inspect.ismethod(value) and value.__self__ is target:
            if not (isinstance(target, BaseModel) and hasattr(BaseModel, name)):
                return types.MethodType(value.__func__, self)
            return value
        return self._observe_child(name, value, _is_writable_attribute(target, name))

    def __setattr__(self, name: str, value: Any) -> None:
        target = self._observed_target
        previous = getattr(target, name, None)
        value = strip_views(value)
        setattr(target, name, value)
        self._observed_by.notify(name, previous, value, join_path(self._observed_path, name))

    def __delattr__(self, name: str) -> None:
        target = self._observed_target
        previous = getattr(target, name, None)
        delattr(target, name)
        self._observed_by.notify(name, previous, None, join_path(self._observed_path, name))

    def __hash__(self) -> int:
        return hash(self._observed_target)

    def __bool__(self) -> bool:
        return bool(self._observed_target)

    def __len__(self) -> int:
        return len(self._observed_target)

    def __iter__(self):
        return iter(self._observed_target)


class ObservedDict(ObservedView, MutableMapping):
    """View of a dict. Keys are path segments."""

    __slots__ = ()
    __hash__ = None

    def __getitem__(self, key: Any) -> Any:
        return self._observe_child(key, self._observed_target[key])

    def __setitem__(self, key: Any, value: Any) -> None:
        target = self._observed_target
        previous = target.get(key)
        value = strip_views(value)
        target[key] = value
        self._observed_by.notify(str(key), previous, value, join_path(self._observed_path, key))

    def __delitem__(self, key: Any) -> None:
        target = self._observed_target
        previous = target[key]
        del target[key]
        self._observed_by.notify(str(key), previous, None, join_path(self._observed_path, key))

    def __iter__(self):
        return iter(self._observed_target)

    def __len__(self) -> int:
        return len(self._observed_target)

    def __contains__(self, key: Any) -> bool:
        return key in self._observed_target

    def __or__(self, other: Any) -> Any:
        return self._observed_target | unwrap(other)

    def __ror__(self, other: Any) -> Any:
        return unwrap(other) | self._observed_target

    def __ior__(self, other: Any) -> "ObservedDict":
        self.update(unwrap(other))
        return self

    def __getattr__(self, name: str) -> Any:
        return getattr(self._observed_target, name)


class ObservedList(ObservedView, MutableSequence):
    """
    View of a list.

    Item assignment and appends are reported per index. Changes that shift
    indices (insert in the middle, delete, sort) are reported once for the
    whole list at its own path.
    """

    __slots__ = ()
    __hash__ = None

    def _position(self, index: int) -> int:
        return index + len(self._observed_target) if index < 0 else index

    def __getitem__(self, index: Any) -> Any:
        target = self._observed_target
        if isinstance(index, slice):
            return target[index]
        return self._observe_child(self._position(index), target[index])

    def __setitem__(self, index: Any, value: Any) -> None:
        target = self._observed_target
        if isinstance(index, slice):
            previous = list(target)
            target[index] = [strip_views(item) for item in value]
            if not deep_equal(previous, target):
                self._notify_replaced()
            return
        position = self._position(index)
        previous = target[position]
        value = strip_views(value)
        target[position] = value
        self._observed_by.notify(str(position), previous, value, join_path(self._observed_path, position))

    def __delitem__(self, index: Any) -> None:
        target = self._observed_target
        length = len(target)
        del target[index]
        if len(target) != length:
            self._notify_replaced()

    def __len__(self) -> int:
        return len(self._observed_target)

    def insert(self, index: int, value: Any) -> None:
        target = self._observed_target
        length = len(target)
        value = strip_views(value)
        target.insert(index, value)
        if index >= length:
            self._observed_by.emit(str(length), value, join_path(self._observed_path, length))
        else:
            self._notify_replaced()

    def sort(self, *args: Any, **kwargs: Any) -> None:
        target = self._observed_target
        before = list(target)
        target.sort(*args, **kwargs)
        if any(a is not b for a, b in zip(before, target)):
            self._notify_replaced()

    def __add__(self, other: Any) -> list:
        return self._observed_target + unwrap(other)

    def __radd__(self, other: Any) -> list:
        return unwrap(other) + self._observed_target

    def __mul__(self, count: int) -> list:
        return self._observed_target * count

    __rmul__ = __mul__

    def __getattr__(self, name: str) -> Any:
        return getattr(self._observed_target, name)

    def _notify_replaced(self) -> None:
        path = self._observed_path
        self._observed_by.emit(path.rsplit(".", 1)[-1], self._observed_target, path)


def observe(
    root: Any,
    request_id: str,
    on_update: UpdateCallback,
    ignored_properties: Iterable[str] = (),
    opaque_types: Iterable[type] = (),
    base_path: str = "",
) -> Any:
    """
    Wraps `root` in an observed view.

    Args:
        root: The object graph to observe. It is never copied or modified by
            reads.
        request_id: The correlation id every update of this graph carries.
        on_update: Called as on_update(request_id, key, value, path) for every change.
        ignored_properties: Field names that are never wrapped and never reported.
        opaque_types: Types that are never wrapped (back-reference handles).
        base_path: Path prefix for every reported field.

    Returns:
        The view, or `root` itself if it is already observed.
    """
    if is_observed(root):
        return root
    observer = Observer(request_id, on_update, ignored_properties, opaque_types)
    return observer.wrap(root, base_path)
