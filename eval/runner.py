"""Eval runner - drives conversation scenarios through the offline client."""

# Add project root to sys.path so the runner works as a plain script
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio  # noqa: E402
from typing import Any  # noqa: E402

import yaml  # noqa: E402

from backend.app.db.inmemory import InMemoryDashboardRepository  # noqa: E402
from backend.app.db.repositories import PersistenceGateway  # noqa: E402
from backend.app.llm.client import DeterministicGenerationClient  # noqa: E402
from backend.app.models import DataScope, Step  # noqa: E402
from backend.app.orchestration.machine import ConversationMachine  # noqa: E402
from backend.app.uploads.parser import parse_upload  # noqa: E402

SCENARIOS_PATH = Path(__file__).resolve().parent / "scenarios.yaml"


def load_scenarios(path: Path = SCENARIOS_PATH) -> dict[str, Any]:
    """Load scenarios from YAML."""
    with open(path) as f:
        result: dict[str, Any] = yaml.safe_load(f)
        return result


def selection_invariant_holds(machine: ConversationMachine) -> bool:
    """A selection may exist only while the conversation is in preview."""
    return machine.state.selected_element is None or machine.state.step == Step.preview


async def run_scenario(scenario: dict[str, Any]) -> tuple[ConversationMachine, dict[str, Any]]:
    """Play a scenario's steps; return the machine and predicate names.

    Raises:
        AssertionError: If the selection invariant breaks after any step
    """
    machine = ConversationMachine(
        DeterministicGenerationClient(),
        PersistenceGateway(InMemoryDashboardRepository()),
        design_prompt_delay_ms=0,
    )
    env: dict[str, Any] = {"exported": None, "saved": None, "remembered_document": None}

    for step in scenario["steps"]:
        if "upload" in step:
            files = [
                parse_upload(f["name"], f.get("mime_type", ""), f["content"]) for f in step["upload"]
            ]
            await machine.handle_upload(files)
        elif "scope" in step:
            await machine.choose_scope(DataScope(step["scope"]))
            await machine.settle()
        elif "message" in step:
            await machine.handle_user_message(step["message"])
        elif "select" in step:
            machine.receive_selection(
                {"type": "element-selected", "payload": {"selector": step["select"]}}
            )
        elif "remember_document" in step:
            env["remembered_document"] = machine.state.document
        elif "export" in step:
            env["exported"] = machine.export()
        elif "save" in step:
            env["saved"] = await machine.save()
        elif "load_saved" in step:
            await machine.load(env["saved"])
        else:
            raise ValueError(f"Unknown scenario step: {step}")

        assert selection_invariant_holds(machine), f"selection outside preview after {step}"

    env.update(state=machine.state, messages=machine.timeline.messages)
    return machine, env


def evaluate_predicates(env: dict[str, Any], predicates: list[dict[str, str]]) -> tuple[int, int]:
    """Evaluate predicates; return (passed, total)."""
    passed = 0
    total = len(predicates)
    scope = {"__builtins__": {}, "len": len, "any": any, **env}

    for pred_data in predicates:
        predicate = pred_data["predicate"]
        description = pred_data.get("description", predicate)
        try:
            result = eval(predicate, scope)
            if result:
                passed += 1
                print(f"  ✓ PASS: {description}")
            else:
                print(f"  ✗ FAIL: {description}")
        except Exception as e:
            print(f"  ✗ ERROR: {description} - {e}")

    return passed, total


async def run_all(scenarios: list[dict[str, Any]]) -> tuple[int, int]:
    """Run every scenario and print per-predicate results."""
    total_passed = 0
    total_predicates = 0

    for scenario in scenarios:
        print(f"\n=== Scenario: {scenario['scenario_id']} ===")
        print(f"Description: {scenario['description']}")

        _, env = await run_scenario(scenario)
        passed, total = evaluate_predicates(env, scenario["must_satisfy"])
        total_passed += passed
        total_predicates += total

        print(f"Result: {passed}/{total} predicates passed")

    return total_passed, total_predicates


def main() -> int:
    """Run eval scenarios."""
    scenarios = load_scenarios()["scenarios"]
    total_passed, total_predicates = asyncio.run(run_all(scenarios))

    print("\n=== Summary ===")
    print(f"Total: {total_passed}/{total_predicates} predicates passed")

    if total_passed < total_predicates:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
