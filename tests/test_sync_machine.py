"""Tests for the state machine with the immediate strategy."""

import pytest

from declarative_fsm import create_state_machine
from declarative_fsm.exceptions import (
    ActionFailure,
    AmbiguousGuardError,
    ConfigurationError,
    TransitionRejected,
    UninitializedMachineError,
)
from declarative_fsm.functions.invoker import CallInvoker, FunctionRegistry
from declarative_fsm.strategies.sync import SyncStrategy


@pytest.fixture
def machine(linear_config):
    m = create_state_machine(linear_config)
    m.initialize()
    return m


def _states(machine):
    return machine.configuration.get_states()


class TestInitialize:

    def test_uses_sync_strategy(self, linear_config):
        m = create_state_machine(linear_config)
        assert isinstance(m.strategy, SyncStrategy)
        assert not m.is_serialized

    def test_initial_state(self, machine):
        assert machine.initialize() == "init"
        assert machine.get_current_state() == "init"
        assert machine.get_current_params() == {}

    def test_missing_init(self):
        m = create_state_machine({"start": {}})

        with pytest.raises(ConfigurationError):
            m.initialize()
        with pytest.raises(UninitializedMachineError):
            m.get_states()

    @pytest.mark.parametrize("operation", [
        lambda m: m.get_states(),
        lambda m: m.get_messages(),
        lambda m: m.has_message("go"),
        lambda m: m.is_available("go"),
        lambda m: m.available(),
        lambda m: m.get_current_state(),
        lambda m: m.send("go"),
    ])
    def test_operations_before_initialize(self, linear_config, operation):
        with pytest.raises(UninitializedMachineError):
            operation(create_state_machine(linear_config))

    def test_reinitialize_discards_progress(self, machine):
        machine.send("go")
        assert machine.get_current_state() == "mid"

        machine.initialize()

        assert machine.get_current_state() == "init"
        assert machine.get_current_params() == {}

    def test_extend_before_initialize(self):
        m = create_state_machine({"first": {"transitions": {"second": "second"}}})
        m.extend({"init": {"transitions": {"first": "first"}}, "second": {}})
        m.initialize()

        assert m.get_states() == ["first", "init", "second"]
        assert m.send("first") == "first"


class TestQueries:

    def test_states_and_messages(self, machine):
        assert machine.get_states() == ["init", "mid", "end"]
        assert machine.get_messages() == ["go", "finish"]

    def test_has_message(self, machine):
        assert machine.has_message("go")
        assert machine.has_message("finish")
        assert not machine.has_message("fake")

    def test_is_available(self, machine):
        assert machine.is_available("go")
        assert not machine.is_available("finish")
        assert not machine.is_available("fake")

    def test_available_matches_transition_table(self, wizard_config):
        m = create_state_machine(wizard_config)
        m.initialize()
        transitions = m.configuration.get_transitions()

        for message in ["start", "next", "back", "next", "submit"]:
            assert m.available() == list(transitions[m.get_current_state()])
            m.send(message)

        assert m.get_current_state() == "done"
        assert m.available() == []


class TestSend:

    def test_end_to_end(self, machine):
        machine.send("go")
        machine.send("finish")

        assert machine.get_current_state() == "end"
        assert machine.get_current_params() == {"x": 1}
        assert machine.available() == []

    def test_send_returns_new_state(self, machine):
        assert machine.send("go") == "mid"

    def test_unknown_message_rejected(self, machine):
        with pytest.raises(TransitionRejected) as exc_info:
            machine.send("fake")

        assert exc_info.value.reason == "unknown message"
        assert machine.get_current_state() == "init"

    def test_unavailable_message_rejected_without_action(self):
        calls = []
        m = create_state_machine({
            "init": {"transitions": {"go": "mid"}},
            "mid": {"transitions": {"finish": "end"}},
            "end": {"action": lambda name: calls.append(name)},
        })
        m.initialize()

        with pytest.raises(TransitionRejected) as exc_info:
            m.send("finish")

        assert exc_info.value.state == "init"
        assert exc_info.value.reason == "message not available"
        assert calls == []
        assert m.get_current_state() == "init"

    def test_rejection_does_not_affect_later_sends(self, machine):
        with pytest.raises(TransitionRejected):
            machine.send("finish")

        assert machine.send("go") == "mid"

    def test_action_receives_previous_state_and_parameters(self):
        received = {}

        def on_first(name, params):
            received.update(name=name, params=params)

        m = create_state_machine({
            "init": {"transitions": {"first": "first"}},
            "first": {"action": on_first},
        })
        m.initialize()
        m.send("first", {"target": {"test": "test"}})

        assert received == {"name": "init", "params": {"target": {"test": "test"}}}
        # Send parameters are not stored unless the action returns them
        assert m.get_current_params() == {}

    def test_named_injection_of_params_entries(self):
        target = {"test": "test"}
        seen = {}

        def on_second(machine, name, target):
            seen.update(machine=machine, name=name, target=target)

        m = create_state_machine({
            "init": {"transitions": {"first": "first"}},
            "first": {"transitions": {"second": "second"}, "action": lambda name: {"target": target}},
            "second": {"action": on_second},
        })
        m.initialize()
        m.send("first")
        m.send("second")

        assert seen["machine"] is m
        assert seen["name"] == "first"
        assert seen["target"] == target

    def test_action_snapshot_is_isolated(self):
        def mutate(params):
            params["nested"]["value"] = "changed"

        m = create_state_machine({
            "init": {"transitions": {"go": "a"}},
            "a": {"transitions": {"go": "b"}, "action": lambda name: {"nested": {"value": "kept"}}},
            "b": {"action": mutate},
        })
        m.initialize()
        m.send("go")
        m.send("go")

        assert m.get_current_params() == {"nested": {"value": "kept"}}

    def test_none_result_carries_previous_params(self, machine):
        machine.send("go")
        mid_params = _states(machine)["mid"].params

        machine.send("finish")

        assert _states(machine)["end"].params is mid_params

    def test_result_merged_into_existing_target_params(self):
        m = create_state_machine({
            "init": {"transitions": {"go": "target"}},
            "target": {
                "params": {"keep": 1, "nested": {"a": 1, "b": 1}},
                "action": lambda name: {"nested": {"b": 2}, "new": True},
                "transitions": {"back": "init"},
            },
        })
        m.initialize()
        m.send("go")

        assert m.get_current_params() == {"keep": 1, "nested": {"a": 1, "b": 2}, "new": True}

    def test_empty_mapping_result_creates_params(self):
        m = create_state_machine({
            "init": {"transitions": {"go": "a"}},
            "a": {"action": lambda name: {}},
        })
        m.initialize()
        m.send("go")

        assert m.get_current_params() == {}

    def test_action_failure_leaves_state_unchanged(self):
        def fail(name):
            raise RuntimeError("boom")

        m = create_state_machine({
            "init": {"transitions": {"bad": "broken", "good": "ok"}},
            "broken": {"action": fail},
            "ok": {},
        })
        m.initialize()

        with pytest.raises(ActionFailure) as exc_info:
            m.send("bad")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.target == "broken"
        assert m.get_current_state() == "init"
        assert m.send("good") == "ok"

    def test_async_action_not_supported(self):
        async def action(name):
            return {"x": 1}

        m = create_state_machine({"init": {"transitions": {"go": "a"}}, "a": {"action": action}})
        m.initialize()

        with pytest.raises(ActionFailure, match="serialized"):
            m.send("go")
        assert m.get_current_state() == "init"

    def test_non_mapping_result(self):
        m = create_state_machine({"init": {"transitions": {"go": "a"}}, "a": {"action": lambda name: 5}})
        m.initialize()

        with pytest.raises(ActionFailure):
            m.send("go")
        assert m.get_current_state() == "init"

    def test_unknown_target_state(self):
        m = create_state_machine({"init": {"transitions": {"go": "nowhere"}}})
        m.initialize()

        with pytest.raises(ConfigurationError):
            m.send("go")
        assert m.get_current_state() == "init"

    def test_registered_action_name(self):
        registry = FunctionRegistry()
        registry.register("load", lambda name: {"loaded": name})

        m = create_state_machine(
            {"init": {"transitions": {"go": "a"}}, "a": {"action": "load"}},
            registry=registry,
        )
        m.initialize()
        m.send("go")

        assert m.get_current_params() == {"loaded": "init"}

    def test_custom_invoker(self):
        m = create_state_machine(
            {"init": {"transitions": {"go": "a"}}, "a": {"action": lambda args: {"from": args["name"]}}},
            invoker=CallInvoker(),
        )
        m.initialize()
        m.send("go")

        assert m.get_current_params() == {"from": "init"}


class TestGuardedTransitions:

    @pytest.fixture
    def review_config(self):
        return {
            "init": {"transitions": {"submit": "review"}},
            "review": {
                "transitions": {
                    "decide": [
                        {"predicate": lambda params: params["amount"] > 100, "to": "manager"},
                        {"predicate": lambda params: params["amount"] <= 100, "to": "approved"},
                    ],
                    "overlap": [
                        {"predicate": lambda params: True, "to": "manager"},
                        {"predicate": lambda params: True, "to": "approved"},
                    ],
                    "nothing": [
                        {"predicate": lambda params: False, "to": "manager"},
                    ],
                },
                "action": lambda params: {"amount": params["amount"]},
            },
            "manager": {},
            "approved": {},
        }

    @pytest.mark.parametrize("amount,expected", [(500, "manager"), (50, "approved")])
    def test_single_match(self, review_config, amount, expected):
        m = create_state_machine(review_config)
        m.initialize()
        m.send("submit", {"amount": amount})

        assert m.send("decide") == expected

    def test_ambiguous(self, review_config):
        m = create_state_machine(review_config)
        m.initialize()
        m.send("submit", {"amount": 1})

        with pytest.raises(AmbiguousGuardError) as exc_info:
            m.send("overlap")

        assert exc_info.value.state == "review"
        assert m.get_current_state() == "review"

    def test_no_match_rejected(self, review_config):
        m = create_state_machine(review_config)
        m.initialize()
        m.send("submit", {"amount": 1})

        with pytest.raises(TransitionRejected) as exc_info:
            m.send("nothing")

        assert exc_info.value.reason == "no guard matched"
        assert m.get_current_state() == "review"

    def test_predicate_receives_state_snapshot(self):
        seen = []

        def predicate(state):
            seen.append(state)
            return True

        m = create_state_machine({
            "init": {"transitions": {"go": [{"predicate": predicate, "to": "end"}]}},
            "end": {},
        })
        m.initialize()
        m.send("go")

        assert seen[0].name == "init"
        assert dict(seen[0].params) == {}
