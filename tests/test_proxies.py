import copy
import dataclasses
import datetime
import json

import pytest

from proxies import CIRCULAR, is_observed, materialize, observe, unwrap
from session_models import Conversation


class Recorder:
    """Collects updates as (request_id, key, value, path) tuples."""

    def __init__(self):
        self.updates = []

    def __call__(self, request_id, key, value, path):
        self.updates.append((request_id, key, value, path))


class Node:
    def __init__(self, **fields):
        self.__dict__.update(fields)


class WithReadOnly:
    def __init__(self):
        self._settings = {"volume": 1}

    @property
    def settings(self):
        return self._settings


@dataclasses.dataclass(frozen=True)
class FrozenHolder:
    data: dict


@pytest.fixture
def recorder():
    return Recorder()


def test_nested_write_reports_dotted_path_and_suppresses_no_op(recorder):
    root = observe(Node(a={"b": 1}), "r1", recorder)

    view = root.a
    assert is_observed(view)

    view["b"] = 2
    assert recorder.updates == [("r1", "b", 2, "a.b")]

    view["b"] = 2
    assert len(recorder.updates) == 1


def test_reading_twice_returns_the_same_view(recorder):
    target = Node(a={"b": {"c": 1}})
    root = observe(target, "r1", recorder)

    first = root.a
    second = root.a

    assert first is second
    assert first["b"] is first["b"]
    assert not is_observed(target.__dict__["a"])
    assert not is_observed(target.a["b"])
    assert recorder.updates == []


def test_slot_holding_a_new_object_gets_a_new_view(recorder):
    root = observe(Node(a={"x": 1}), "r1", recorder)
    first = root.a

    root.a = {"x": 2}

    assert root.a is not first
    assert root.a is root.a
    assert root.a == {"x": 2}


def test_read_only_property_gets_a_fresh_view_and_container_is_untouched(recorder):
    target = WithReadOnly()
    root = observe(target, "r1", recorder)

    first = root.settings
    second = root.settings

    assert is_observed(first) and is_observed(second)
    assert first is not second
    assert not is_observed(target._settings)

    first["volume"] = 5
    assert recorder.updates == [("r1", "volume", 5, "settings.volume")]


def test_frozen_dataclass_fields_are_not_replaced(recorder):
    target = FrozenHolder(data={"x": 1})
    root = observe(target, "r1", recorder)

    view = root.data
    assert is_observed(view)
    assert root.data is not view
    assert not is_observed(target.data)

    view["x"] = 2
    assert recorder.updates == [("r1", "x", 2, "data.x")]


def test_deeply_equal_replacement_is_not_reported(recorder):
    root = observe(Node(config={"a": [1, 2], "b": {"c": True}}), "r1", recorder)

    root.config = {"a": [1, 2], "b": {"c": True}}
    assert recorder.updates == []

    root.config = {"a": [1, 2, 3], "b": {"c": True}}
    assert recorder.updates == [("r1", "config", {"a": [1, 2, 3], "b": {"c": True}}, "config")]


def test_cyclic_graph_terminates_and_probe_is_true(recorder):
    parent = {"name": "parent"}
    child = {"name": "child", "parent": parent}
    parent["child"] = child
    root = observe(Node(tree=parent), "r1", recorder)

    view = root.tree["child"]["parent"]["child"]["parent"]

    assert is_observed(view)
    assert view.__is_observed__ is True
    assert view is root.tree["child"]["parent"]
    assert unwrap(view) is parent
    assert parent["child"] is child and child["parent"] is parent

    view["name"] = "root"
    assert recorder.updates == [("r1", "name", "root", "tree.child.parent.name")]


def test_observe_is_idempotent(recorder):
    root = observe({"a": 1}, "r1", recorder)
    assert observe(root, "r2", recorder) is root


def test_ignored_properties_are_never_wrapped_or_reported(recorder):
    app = Node(config={"debug": True})
    target = Node(app=app, user={})
    root = observe(target, "r1", recorder, ignored_properties=["app", "handle_request", "platform"])

    assert root.app is app
    root.app = Node(config={"debug": False})
    root.platform = {"name": "core"}
    root.handle_request = {"id": 1}

    assert recorder.updates == []


def test_opaque_and_leaf_values_are_not_wrapped(recorder):
    now = datetime.datetime(2024, 1, 1, 12, 0)
    handle = Node(secret=1)
    root = observe(Node(created=now, handle=handle), "r1", recorder, opaque_types=(Node,))

    assert root.created is now
    assert root.handle is handle

    root.created = datetime.datetime(2024, 1, 2, 12, 0)
    assert recorder.updates == [("r1", "created", "2024-01-02T12:00:00", "created")]


def test_concurrent_requests_never_cross_emit(recorder):
    first = observe(Node(session={"count": 0}), "request-a", recorder)
    second = observe(Node(session={"count": 0}), "request-b", recorder)

    first.session["count"] = 1
    second.session["count"] = 1
    first.session["count"] = 2
    second.session["count"] = 3

    assert recorder.updates == [
        ("request-a", "count", 1, "session.count"),
        ("request-b", "count", 1, "session.count"),
        ("request-a", "count", 2, "session.count"),
        ("request-b", "count", 3, "session.count"),
    ]


def test_list_item_and_structural_changes(recorder):
    root = observe(Node(output=[{"message": "hi"}]), "r1", recorder)

    root.output[0]["message"] = "hello"
    root.output.append({"message": "bye"})
    del root.output[0]

    assert recorder.updates == [
        ("r1", "message", "hello", "output.0.message"),
        ("r1", "1", {"message": "bye"}, "output.1"),
        ("r1", "output", [{"message": "bye"}], "output"),
    ]


def test_insert_in_the_middle_reports_the_whole_list(recorder):
    root = observe(Node(output=["a", "c"]), "r1", recorder)

    root.output.insert(1, "b")

    assert recorder.updates == [("r1", "output", ["a", "b", "c"], "output")]


def test_items_keep_the_path_of_their_current_index(recorder):
    root = observe(Node(output=[{"n": 1}]), "r1", recorder)
    first = root.output[0]

    root.output.insert(0, {"n": 0})
    moved = root.output[1]
    moved["n"] = 2

    assert unwrap(moved) is unwrap(first)
    assert recorder.updates[-1] == ("r1", "n", 2, "output.1.n")


def test_list_sort_reports_only_when_order_changes(recorder):
    root = observe(Node(scores=[3, 1, 2]), "r1", recorder)

    root.scores.sort()
    root.scores.sort()

    assert recorder.updates == [("r1", "scores", [1, 2, 3], "scores")]


def test_dict_deletion_reports_none(recorder):
    root = observe(Node(session={"a": 1}), "r1", recorder)

    del root.session["a"]

    assert recorder.updates == [("r1", "a", None, "session.a")]


def test_views_pass_isinstance_checks_and_compare_equal(recorder):
    root = observe(Node(data={"a": [1]}), "r1", recorder)

    assert isinstance(root, Node)
    assert isinstance(root.data, dict)
    assert isinstance(root.data["a"], list)
    assert root.data == {"a": [1]}
    assert root.data.get("missing", "default") == "default"
    assert "a" in root.data


def test_writes_inside_methods_are_observed(recorder):
    conversation = Conversation(request={"type": "LAUNCH"})
    root = observe(conversation, "r1", recorder)

    root.say("Hello")
    root.end_session()

    assert recorder.updates == [
        ("r1", "0", {"message": "Hello"}, "output.0"),
        ("r1", "end", True, "session.end"),
    ]
    assert conversation.output == [{"message": "Hello"}]


def test_emitted_values_are_detached_from_the_graph(recorder):
    root = observe(Node(data={}), "r1", recorder)
    items = [1, 2]

    root.data["items"] = items
    items.append(3)

    assert recorder.updates == [("r1", "items", [1, 2], "data.items")]


def test_materialize_cuts_cycles_and_unwraps_views(recorder):
    cyclic = {"name": "loop"}
    cyclic["self"] = cyclic
    root = observe(Node(data={"nested": {"x": 1}}), "r1", recorder)

    assert materialize(cyclic) == {"name": "loop", "self": CIRCULAR}
    assert materialize(root.data) == {"nested": {"x": 1}}
    assert materialize(Conversation(request={"a": 1}), ignored_properties=["app", "handle_request", "platform"]) == {
        "request": {"a": 1},
        "input": {},
        "output": [],
        "session": {},
        "user": {},
        "data": {},
        "response": None,
    }


def test_reads_leave_the_graph_serializable(recorder):
    payload = {"type": "LAUNCH", "user": {"id": "u1"}}
    conversation = Conversation(request=payload, session={"a": {"b": 1}}, output=[{"message": "hi"}])
    root = observe(conversation, "r1", recorder, ignored_properties=["app", "handle_request", "platform"])

    root.session["a"]["b"]
    root.request["user"]["id"]
    for item in root.output:
        item["message"]
    root.data["alias"] = root.session["a"]
    root.response = {"output": list(root.output), "session": dict(root.session)}

    dumped = json.loads(conversation.model_dump_json(exclude={"app", "handle_request", "platform"}))
    assert dumped["session"] == {"a": {"b": 1}}
    assert dumped["data"] == {"alias": {"b": 1}}
    assert dumped["response"] == {"output": [{"message": "hi"}], "session": {"a": {"b": 1}}}
    assert conversation.data["alias"] is conversation.session["a"]
    assert not is_observed(payload["user"])
    assert json.loads(json.dumps(materialize(root.session))) == {"a": {"b": 1}}


def test_list_operators_work_on_views(recorder):
    root = observe(Conversation(output=[{"message": "a"}]), "r1", recorder)

    root.output = root.output + [{"message": "b"}]
    combined = [{"message": "z"}] + root.output
    repeated = root.output * 2
    root.output += [{"message": "c"}]

    assert type(combined) is list and combined[0] == {"message": "z"}
    assert len(repeated) == 4 and len(2 * root.output) == 6
    assert recorder.updates == [
        ("r1", "output", [{"message": "a"}, {"message": "b"}], "output"),
        ("r1", "2", {"message": "c"}, "output.2"),
    ]


def test_dict_operators_work_on_views(recorder):
    root = observe(Node(session={"a": 1}), "r1", recorder)

    merged = root.session | {"b": 2}
    reverse_merged = {"z": 0} | root.session
    session = root.session
    session |= {"c": 3}

    assert merged == {"a": 1, "b": 2} and type(merged) is dict
    assert reverse_merged == {"z": 0, "a": 1}
    assert session is root.session
    assert recorder.updates == [("r1", "c", 3, "session.c")]


def test_copies_of_views_are_plain(recorder):
    root = observe(Node(session={"a": {"b": 1}}), "r1", recorder)

    shallow = copy.copy(root.session)
    deep = copy.deepcopy(root.session)
    deep["a"]["b"] = 2

    assert type(shallow) is dict and not is_observed(shallow)
    assert type(deep) is dict and root.session["a"]["b"] == 1
    assert recorder.updates == []


def test_type_changing_writes_are_reported(recorder):
    created = datetime.datetime(2024, 1, 1, 12, 0)
    root = observe(Node(state={"flag": 1, "n": (1, 2), "when": created, "obj": Node(x=1)}), "r1", recorder)

    root.state["flag"] = True
    root.state["n"] = [1, 2]
    root.state["when"] = created.isoformat()
    root.state["obj"] = {"x": 1}
    root.state["flag"] = True

    assert [update[1] for update in recorder.updates] == ["flag", "n", "when", "obj"]
