"""
llm-eval-engine Package

Executes test suites against LLM prompts and HTTP endpoints: variable
substitution, rule and judge validation, multi-turn conversations and
streamed, bounded-concurrency runs.
"""

__version__ = "0.1.0"

__all__ = [
    "api",
    "core",
    "models",
    "prompts",
    "services",
    "utils",
]
