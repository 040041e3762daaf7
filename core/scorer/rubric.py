#!/usr/bin/env python3
"""
Rubric loading and validation.

The rubric is read from YAML once at process start, validated, and frozen.
Any inconsistency raises ConfigurationError so the process refuses to score
instead of dividing by zero later.

Example rubric.yaml:

    version: "2024-05"
    dimensions:
      community: 2
      environment: 1
    questions:
      - id: beneficiaries
        field: beneficiaries-count
        dimension: community
        weight: 1.5
        answers:
          "Over 1000": 3
          "100-1000": 2
          "Under 100": 1
"""

import logging
from types import MappingProxyType
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from core.errors import ConfigurationError
from core.scorer.models import Question, Rubric
from core.scorer.service import answer_key, round_half_up

logger = logging.getLogger(__name__)


class QuestionConfig(BaseModel):
    id: str
    field: Optional[str] = None  # defaults to id
    dimension: str
    weight: float = 1.0
    answers: Dict[str, float] = Field(default_factory=dict)


class RubricConfig(BaseModel):
    version: Optional[str] = None
    dimensions: Dict[str, float]
    questions: List[QuestionConfig]


def build_rubric(config: RubricConfig) -> Rubric:
    """
    Validate a parsed rubric and freeze it.

    Raises:
        ConfigurationError: On any structural inconsistency
    """
    errors: List[str] = []

    for name, weight in config.dimensions.items():
        if weight <= 0:
            errors.append(f"dimension '{name}' has non-positive weight {weight}")

    seen_ids = set()
    seen_fields = set()
    questions = []
    for q in config.questions:
        field_name = q.field or q.id
        if q.id in seen_ids:
            errors.append(f"question id '{q.id}' is duplicated")
        if field_name in seen_fields:
            errors.append(f"field '{field_name}' is scored by more than one question")
        seen_ids.add(q.id)
        seen_fields.add(field_name)

        if q.dimension not in config.dimensions:
            errors.append(f"question '{q.id}' references unknown dimension '{q.dimension}'")
        if not q.answers:
            errors.append(f"question '{q.id}' declares no scored answers")
        if q.weight <= 0:
            errors.append(f"question '{q.id}' has non-positive weight {q.weight}")
        negative = [a for a, p in q.answers.items() if p < 0]
        if negative:
            errors.append(f"question '{q.id}' has negative points for {negative}")
        folded: Dict[str, str] = {}
        for answer in q.answers:
            key = answer_key(answer)
            if key in folded:
                errors.append(
                    f"question '{q.id}' answers '{folded[key]}' and '{answer}' are indistinguishable"
                )
            folded.setdefault(key, answer)

        questions.append(Question(
            question_id=q.id,
            field=field_name,
            dimension=q.dimension,
            weight=q.weight,
            answers=MappingProxyType({str(a).strip(): float(p) for a, p in q.answers.items()})
        ))

    for name in config.dimensions:
        bound = [q for q in questions if q.dimension == name]
        if not bound:
            errors.append(f"dimension '{name}' has no questions")
            continue
        max_sum = sum(round_half_up(q.max_points * q.weight) for q in bound if q.answers)
        if max_sum <= 0:
            errors.append(f"dimension '{name}' has a maximum score of zero")

    if errors:
        raise ConfigurationError("Invalid rubric: " + "; ".join(errors))

    rubric = Rubric(
        dimensions=MappingProxyType(dict(config.dimensions)),
        questions=tuple(questions),
        version=config.version
    )
    logger.info(
        f"Rubric loaded: {len(rubric.dimensions)} dimensions, "
        f"{len(rubric.questions)} questions (version {rubric.version})"
    )
    return rubric


def parse_rubric(data: dict) -> Rubric:
    try:
        config = RubricConfig(**(data or {}))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid rubric: {e}") from e
    return build_rubric(config)


def load_rubric(path: str) -> Rubric:
    """Load and validate a rubric YAML file."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read rubric file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Rubric file {path} is not valid YAML: {e}") from e
    return parse_rubric(data)
