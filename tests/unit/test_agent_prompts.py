"""Tests for planning agent profiles and plan metadata parsing."""

import pytest

from selekAgent.orchestration import PROFILES, VALID_AGENT_TYPES, domain_for_type, get_profile
from selekAgent.orchestration.agent_prompts import extract_plan_metadata


def test_every_valid_type_has_a_profile():
    assert set(PROFILES) == set(VALID_AGENT_TYPES)
    assert VALID_AGENT_TYPES == ("implementation", "security", "performance")


def test_unknown_profile():
    with pytest.raises(KeyError):
        get_profile("bogus")


def test_domain_for_type():
    assert domain_for_type("security") == "Application Security"
    assert domain_for_type("unknown") == "Software Development"


def test_system_prompt_lists_required_sections():
    profile = get_profile("performance")
    prompt = profile.system_prompt("Performance Optimization")

    assert "Performance Optimization" in prompt
    for section in profile.required_sections:
        assert section in prompt


def test_task_prompt_mentions_dependencies_by_name():
    profile = get_profile("security")
    prompt = profile.task_prompt("Audit login", ["/tmp/plans/implementation/impl-plan.md"])

    assert prompt.startswith("SECURITY REVIEW TASK: Audit login")
    assert "## Implementation Plans to Review" in prompt
    assert "- impl-plan.md" in prompt
    assert "/tmp/plans" not in prompt


def test_task_prompt_without_dependencies():
    prompt = get_profile("implementation").task_prompt("Build it")
    assert "Dependencies from Other Agents" not in prompt


def test_missing_sections():
    profile = get_profile("implementation")
    plan = "# Title\n" + "\n".join(profile.required_sections[:-1])

    assert profile.missing_sections(plan) == ["## Rollback Strategy"]
    assert profile.missing_sections("no title")[0] == "# <title>"


def test_extract_plan_metadata():
    plan = (
        "# Plan\n"
        "**Plan ID:** impl-42\n"
        "**Complexity:** Complex\n"
        "**Estimated Effort:** 3 days\n"
        "**Dependencies:** a.md, b.md\n"
    )
    metadata = extract_plan_metadata(plan, "implementation-001", "Software Development")

    assert metadata["plan_id"] == "impl-42"
    assert metadata["complexity"] == "Complex"
    assert metadata["estimated_effort"] == "3 days"
    assert metadata["dependencies"] == ["a.md", "b.md"]
    assert metadata["domain"] == "Software Development"


def test_extract_plan_metadata_defaults():
    metadata = extract_plan_metadata("**Complexity:** Huge\n**Dependencies:** None", "security-002", "X")

    assert metadata["plan_id"].startswith("security-002-")
    assert metadata["complexity"] == "Standard"
    assert metadata["dependencies"] == []
