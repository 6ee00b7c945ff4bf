# ideaforge/pipeline/prompts.py
"""
Prompt templates for the built-in planning steps.

Each template names the JSON shape the model must return. Unknown step
names (custom catalogues) fall back to a generic instruction.
"""

import json
from typing import Any

SYSTEM_PROMPT = (
    "You are a senior product manager and software architect. You turn rough "
    "product ideas into concrete, buildable plans. You are specific, you state "
    "assumptions explicitly, and you answer with valid JSON only: double-quoted "
    "keys and strings, no comments, no trailing commas, no text outside the JSON."
)

STEP_INSTRUCTIONS: dict[str, str] = {
    "project-structure": (
        "Analyze the product idea. Identify the core problem, target users, "
        "critical user journeys, and the features needed. Separate MVP-critical "
        "core features from suggested enhancements."
    ),
    "tech-stack": (
        "Recommend a technology stack for the project. For each category give "
        "two or three options, the recommended one first, with a one-sentence "
        "rationale tied to the project's features."
    ),
    "sprint-plan": (
        "Plan two-week sprints that deliver the core features first using the "
        "recommended stack. Every sprint has a goal and concrete tasks with "
        "estimates in story points."
    ),
    "cost-estimate": (
        "Estimate monthly infrastructure and operations cost (not personnel) "
        "for the recommended stack at 1k, 10k and 100k monthly active users. "
        "List the main cost drivers and optimization options."
    ),
    "documentation": (
        "Write project documentation: overview, architecture summary, setup "
        "guide, and a short description of each core feature."
    ),
}

STEP_SCHEMAS: dict[str, dict[str, Any]] = {
    "project-structure": {
        "title": "string",
        "description": "string",
        "targetUsers": ["string"],
        "coreFeatures": [{"id": "string", "name": "string", "description": "string"}],
        "suggestedFeatures": [{"id": "string", "name": "string", "description": "string"}],
    },
    "tech-stack": {
        "frontend": [{"name": "string", "rationale": "string"}],
        "backend": [{"name": "string", "rationale": "string"}],
        "database": [{"name": "string", "rationale": "string"}],
        "hosting": [{"name": "string", "rationale": "string"}],
    },
    "sprint-plan": {
        "sprints": [
            {
                "number": 1,
                "goal": "string",
                "tasks": [{"title": "string", "description": "string", "points": 3}],
            }
        ],
    },
    "cost-estimate": {
        "currency": "USD",
        "tiers": [{"users": 1000, "monthlyCost": 0, "breakdown": {"service": 0}}],
        "costDrivers": ["string"],
        "optimizations": ["string"],
    },
    "documentation": {
        "overview": "string",
        "architecture": "string",
        "setup": "string",
        "features": [{"name": "string", "details": "string"}],
    },
}

GENERIC_INSTRUCTION = "Produce the '{step_name}' artifact for the project."


def build_messages(step_name: str, input_context: dict[str, Any]) -> list[dict]:
    """
    Build chat messages for one generation step.

    Args:
        step_name: Step being generated
        input_context: Job inputs (e.g. "idea") plus prior artifacts by step name

    Returns:
        System + user messages
    """
    instruction = STEP_INSTRUCTIONS.get(
        step_name, GENERIC_INSTRUCTION.format(step_name=step_name)
    )

    parts = []
    idea = input_context.get("idea")
    if idea:
        parts.append(f'Product idea: "{idea}"')

    prior = {k: v for k, v in input_context.items() if k != "idea"}
    for name, payload in prior.items():
        parts.append(f"{name.upper()} (from an earlier step):\n{json.dumps(payload, indent=2)}")

    parts.append(instruction)

    schema = STEP_SCHEMAS.get(step_name)
    if schema is not None:
        parts.append(
            "Respond with a JSON object shaped like this example:\n"
            f"{json.dumps(schema, indent=2)}"
        )
    else:
        parts.append("Respond with a single JSON object.")

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n\n".join(parts)},
    ]
