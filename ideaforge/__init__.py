# ideaforge/__init__.py
"""
ideaforge: background multi-stage generation pipeline for product planning.

Turns a natural-language product idea into a sequence of persisted planning
artifacts (project structure, tech stack, sprint plan, cost estimate,
documentation) while reporting durable progress.
"""

__version__ = "0.1.0"
