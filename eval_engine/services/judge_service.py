"""
Judge Service

Uses a second LLM to score outputs against weighted criteria and to decide
pass/fail gates written in natural language.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from eval_engine.core.config import settings
from eval_engine.core.logger import get_logger
from eval_engine.core.prompt_loader import load_prompt
from eval_engine.models import JudgeCriterion, JudgeValidationRule, LLMJudgeConfig
from eval_engine.services.llm_service import LLMService
from eval_engine.utils.json_utils import find_json_object
from eval_engine.utils.variables import substitute

logger = get_logger(__name__)

SCORING_PROMPT = "judge_scoring.txt"
VALIDATION_PROMPT = "judge_validation.txt"


class JudgeParseError(ValueError):
    """The judge reply did not contain a usable JSON object."""


class JudgeScore(BaseModel):
    """Weighted criteria score in [0, 1]."""

    score: float = Field(..., description="Weighted score rounded to 2 decimals")
    scores: Dict[str, float] = Field(default_factory=dict, description="Raw 0-10 score per criterion")
    reasoning: str = Field(default="", description="Overall reasoning from the judge")


class JudgeValidationOutcome(BaseModel):
    """Result of checking natural-language gates."""

    passed: bool
    results: Dict[str, bool] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


def _fmt_weight(weight: float) -> str:
    return str(int(weight)) if float(weight).is_integer() else str(weight)


def format_criteria(criteria: Sequence[JudgeCriterion]) -> str:
    return "\n".join(
        f"{i}. {c.name} (weight: {_fmt_weight(c.weight)}): {c.description}"
        for i, c in enumerate(criteria, 1)
    )


def format_rules(rules: Sequence[JudgeValidationRule]) -> str:
    return "\n".join(f"{i}. {r.name}: {r.description}" for i, r in enumerate(rules, 1))


def _parse_reply(content: str) -> Dict[str, Any]:
    parsed = find_json_object(content)
    if parsed is None:
        raise JudgeParseError("No JSON found in judge response")
    return parsed


def weighted_score(criteria: Sequence[JudgeCriterion], scores: Mapping[str, float]) -> float:
    """
    Combine 0-10 criterion scores into a weighted score in [0, 1].

    Criteria without a numeric score are excluded from both the sum and the
    total weight. The result is normalized by the total weight when it is
    not 1 and rounded to 2 decimals.
    """
    weighted = 0.0
    total_weight = 0.0
    for criterion in criteria:
        score = scores.get(criterion.name)
        if score is None:
            continue
        weighted += (score / 10) * criterion.weight
        total_weight += criterion.weight

    if total_weight > 0 and total_weight != 1:
        weighted = weighted / total_weight
    return math.floor(weighted * 100 + 0.5) / 100


def _percent(value: float) -> int:
    return math.floor(value * 100 + 0.5)


def check_min_score(score: float, min_score: Optional[float]) -> Optional[str]:
    """
    Return a failure message when the score is below the threshold.

    A missing or zero threshold disables the check; a score equal to the
    threshold passes.
    """
    if not min_score or min_score <= 0 or score >= min_score:
        return None
    return (
        f"Judge score {_percent(score)}% is below minimum threshold of "
        f"{_percent(min_score)}%"
    )


def build_input_summary(inputs: Mapping[str, Any]) -> str:
    """Render named inputs as ``name: value`` lines for judge prompts."""
    return "\n".join(f"{key}: {value}" for key, value in inputs.items())


class JudgeService:
    """Scores and gates outputs with an LLM judge."""

    def __init__(self, llm_service: Optional[LLMService] = None) -> None:
        self.llm_service = llm_service or LLMService()

    async def _ask(
        self,
        prompt: str,
        config: LLMJudgeConfig,
        credentials: Optional[Mapping[str, str]],
        temperature: float,
    ) -> str:
        completion = await self.llm_service.simple_complete(
            provider=config.provider or settings.judge__default_provider,
            model=config.model or settings.judge__default_model,
            user_message=prompt,
            credentials=credentials,
            temperature=temperature,
            max_tokens=settings.judge__max_tokens,
        )
        return completion.content

    async def judge(
        self,
        input_summary: str,
        expected: Optional[str],
        output: str,
        config: LLMJudgeConfig,
        credentials: Optional[Mapping[str, str]] = None,
    ) -> JudgeScore:
        """
        Rate the output against every configured criterion.

        Returns a zero score with empty per-criterion scores when judging is
        disabled or no criteria exist. An unparseable reply yields a zero
        score whose reasoning describes the parse failure.
        """
        if not config.enabled or not config.criteria:
            return JudgeScore(score=0.0)

        prompt = substitute(
            load_prompt(SCORING_PROMPT),
            {
                "input": input_summary,
                "expected": expected or "Not specified",
                "output": output,
                "criteria": format_criteria(config.criteria),
            },
        )
        content = await self._ask(
            prompt, config, credentials, settings.judge__scoring_temperature
        )

        try:
            parsed = _parse_reply(content)
            raw_scores = parsed.get("scores") or {}
            scores: Dict[str, float] = {}
            for criterion in config.criteria:
                entry = raw_scores.get(criterion.name)
                value = entry.get("score") if isinstance(entry, dict) else None
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    scores[criterion.name] = value
        except (JudgeParseError, AttributeError) as exc:
            logger.warning("Failed to parse judge response: %s", exc)
            return JudgeScore(
                score=0.0, reasoning=f"Failed to parse judge response: {exc}"
            )

        return JudgeScore(
            score=weighted_score(config.criteria, scores),
            scores=scores,
            reasoning=str(parsed.get("overall_reasoning") or ""),
        )

    async def judge_validate(
        self,
        input_summary: str,
        output: str,
        rules: Sequence[JudgeValidationRule],
        config: LLMJudgeConfig,
        credentials: Optional[Mapping[str, str]] = None,
    ) -> JudgeValidationOutcome:
        """
        Ask the judge whether the output satisfies each rule.

        Only an explicit ``passed: true`` counts as passing. Failing ``fail``
        rules flip the outcome and add an error; failing ``warning`` rules
        only add a warning.
        """
        if not rules:
            return JudgeValidationOutcome(passed=True)

        prompt = substitute(
            load_prompt(VALIDATION_PROMPT),
            {"input": input_summary, "output": output, "rules": format_rules(rules)},
        )
        content = await self._ask(
            prompt, config, credentials, settings.judge__validation_temperature
        )

        try:
            parsed = _parse_reply(content)
            raw_results = parsed.get("results") or {}
            if not isinstance(raw_results, dict):
                raise JudgeParseError(
                    f"Unexpected results payload: {json.dumps(raw_results)[:200]}"
                )
        except (JudgeParseError, AttributeError) as exc:
            logger.warning("Failed to parse judge validation response: %s", exc)
            return JudgeValidationOutcome(
                passed=False, errors=[f"Failed to validate: {exc}"]
            )

        outcome = JudgeValidationOutcome(passed=True)
        for rule in rules:
            entry = raw_results.get(rule.name)
            entry = entry if isinstance(entry, dict) else {}
            rule_passed = entry.get("passed") is True
            outcome.results[rule.name] = rule_passed
            if rule_passed:
                continue

            message = rule.failure_message or f"Failed: {rule.name}"
            if entry.get("reason"):
                message += f" ({entry['reason']})"
            if rule.severity == "warning":
                outcome.warnings.append(message)
            else:
                outcome.errors.append(message)
                outcome.passed = False

        return outcome


__all__ = [
    "JudgeScore",
    "JudgeService",
    "JudgeValidationOutcome",
    "build_input_summary",
    "check_min_score",
    "format_criteria",
    "format_rules",
    "weighted_score",
]
