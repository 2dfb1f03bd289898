"""
SkillFlow — compile natural-language goals into skill-bound workflows,
edit them as dependency graphs, and persist them per project.

Packages:
    config    — dataclass configuration read from SKILLFLOW_* variables
    skills    — installed skills, the install registry, name resolution
    llm       — text generation and plan parsing
    workflow  — models, graph editing, compilation, persistence, execution
"""

__version__ = "0.1.0"
