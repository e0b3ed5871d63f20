"""Specialized planning agent profiles: system prompts, task prompts, required sections."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

VALID_AGENT_TYPES: Tuple[str, ...] = ("implementation", "security", "performance")

AGENT_DOMAINS: Dict[str, str] = {
    "implementation": "Software Development",
    "security": "Application Security",
    "performance": "Performance Optimization",
}


SYSTEM_PROMPT_TEMPLATE = """You are a senior {role} planning agent working in the {domain} domain.

You produce a written plan only. You never execute code or modify files yourself; the
orchestrator stores your plan and shares it with the other agents.

Output format:
- Markdown, starting with a single "# <plan title>" line
- Metadata lines directly under the title:
  **Plan ID:** <id>
  **Domain:** {domain}
  **Complexity:** Simple | Standard | Complex
  **Estimated Effort:** <estimate>
  **Dependencies:** <comma separated plan files, or None>
- Then every one of these sections, as "## " headings, in this order:
{sections}
"""

IMPLEMENTATION_FOCUS = """Please create a comprehensive implementation plan following the template structure.
Remember to:
1. Reference the project context and any plans listed above
2. Choose appropriate plan complexity (Minimal vs Standard)
3. Include all required sections
4. Define custom exception classes
5. Specify SOLID principles justification
6. Create incremental checkpoints
7. Define rollback strategy
"""

SECURITY_FOCUS = """Please create a comprehensive security review following the template structure.
Focus on:
1. OWASP Top 10 vulnerabilities
2. Authentication and authorization issues
3. Data encryption and protection
4. Input validation and sanitization
5. SQL injection, XSS, CSRF risks
6. API security concerns
7. Secrets management
8. Compliance requirements (GDPR, PCI-DSS, etc.)
9. Security testing requirements
10. Incident response procedures
"""

PERFORMANCE_FOCUS = """Please create a comprehensive performance analysis following the template structure.
Focus on:
1. Performance baselines and targets
2. Latency and throughput requirements
3. Memory and CPU utilization
4. Database query optimization
5. N+1 query problems
6. Caching strategies (Redis, CDN, etc.)
7. Load balancing and horizontal scaling
8. Connection pooling
9. Async processing and queue systems
10. Performance monitoring tools
11. Load testing scenarios
12. Performance budgets
"""


@dataclass(frozen=True)
class AgentProfile:
    agent_type: str
    role: str
    task_label: str
    dependency_heading: str
    dependency_intro: str
    focus: str
    required_sections: Tuple[str, ...]

    def system_prompt(self, domain: str) -> str:
        sections = "\n".join(f"  {s}" for s in self.required_sections)
        return SYSTEM_PROMPT_TEMPLATE.format(role=self.role, domain=domain, sections=sections)

    def task_prompt(self, task: str, dependencies: Sequence[str] = ()) -> str:
        prompt = f"{self.task_label}: {task}\n\n"
        if dependencies:
            prompt += f"## {self.dependency_heading}\n\n{self.dependency_intro}\n"
            prompt += "".join(f"- {Path(dep).name}\n" for dep in dependencies)
            prompt += "\n"
        return prompt + self.focus

    def missing_sections(self, plan: str) -> List[str]:
        missing = [s for s in self.required_sections if s not in plan]
        if not re.search(r"^# \S", plan, re.MULTILINE):
            missing.insert(0, "# <title>")
        return missing


PROFILES: Dict[str, AgentProfile] = {
    "implementation": AgentProfile(
        agent_type="implementation",
        role="implementation",
        task_label="TASK",
        dependency_heading="Dependencies from Other Agents",
        dependency_intro="The following files contain outputs from other agents that you should consider:",
        focus=IMPLEMENTATION_FOCUS,
        required_sections=(
            "## Context Summary",
            "## Implementation Steps",
            "## Error Handling Strategy",
            "## Type Safety",
            "## Testing Requirements",
            "## Success Metrics",
            "## Incremental Implementation Checkpoints",
            "## Rollback Strategy",
        ),
    ),
    "security": AgentProfile(
        agent_type="security",
        role="security review",
        task_label="SECURITY REVIEW TASK",
        dependency_heading="Implementation Plans to Review",
        dependency_intro="The following files contain implementation plans that need security review:",
        focus=SECURITY_FOCUS,
        required_sections=(
            "## Threat Analysis",
            "## OWASP Top 10 Assessment",
            "## Security Requirements",
            "## Vulnerability Assessment",
            "## Mitigation Strategies",
            "## Compliance Requirements",
            "## Security Testing",
            "## Incident Response Plan",
        ),
    ),
    "performance": AgentProfile(
        agent_type="performance",
        role="performance analysis",
        task_label="PERFORMANCE ANALYSIS TASK",
        dependency_heading="Implementation Plans to Analyze",
        dependency_intro="The following files contain implementation plans that need performance analysis:",
        focus=PERFORMANCE_FOCUS,
        required_sections=(
            "## Performance Baseline",
            "## Bottleneck Analysis",
            "## Optimization Strategy",
            "## Resource Utilization",
            "## Scalability Assessment",
            "## Caching Strategy",
            "## Database Optimization",
            "## Performance Testing",
            "## Monitoring & Alerting",
        ),
    ),
}


def get_profile(agent_type: str) -> AgentProfile:
    try:
        return PROFILES[agent_type]
    except KeyError:
        raise KeyError(f"No planning profile for agent type '{agent_type}'") from None


def domain_for_type(agent_type: str) -> str:
    return AGENT_DOMAINS.get(agent_type, AGENT_DOMAINS["implementation"])


_METADATA_FIELDS = {
    "**Plan ID:**": "plan_id",
    "**Domain:**": "domain",
    "**Complexity:**": "complexity",
    "**Estimated Effort:**": "estimated_effort",
    "**Dependencies:**": "dependencies",
}


def extract_plan_metadata(plan: str, agent_id: str, domain: str) -> Dict[str, Any]:
    """Pull the ``**Key:** value`` metadata lines out of a generated plan."""
    metadata: Dict[str, Any] = {
        "plan_id": None,
        "domain": domain,
        "complexity": "Standard",
        "estimated_effort": "Unknown",
        "plan_version": "1.0",
        "dependencies": [],
    }
    for line in plan.split("\n"):
        for marker, key in _METADATA_FIELDS.items():
            if marker not in line:
                continue
            value = line.split(marker, 1)[1].strip()
            if not value:
                continue
            if key == "complexity":
                if value in ("Simple", "Standard", "Complex"):
                    metadata[key] = value
            elif key == "dependencies":
                if value != "None":
                    metadata[key] = [d.strip() for d in value.split(",") if d.strip()]
            else:
                metadata[key] = value

    if not metadata["plan_id"]:
        metadata["plan_id"] = f"{agent_id}-{int(time.time() * 1000)}"
    return metadata


__all__ = [
    "VALID_AGENT_TYPES",
    "AgentProfile",
    "PROFILES",
    "get_profile",
    "domain_for_type",
    "extract_plan_metadata",
]
