#!/usr/bin/env python3
"""
Scoring Models - Rubric structure and scoring results.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Question:
    """A rubric question bound to one dimension and one submission field."""
    question_id: str
    field: str
    dimension: str
    weight: float
    answers: Mapping[str, float]  # allowed answer -> points (read-only)

    @property
    def max_points(self) -> float:
        return max(self.answers.values())


@dataclass(frozen=True)
class Rubric:
    """Static scoring configuration. Built once by core.scorer.rubric."""
    dimensions: Mapping[str, float]  # dimension name -> relative weight
    questions: Tuple[Question, ...]
    version: Optional[str] = None

    def questions_for(self, dimension: str) -> Tuple[Question, ...]:
        return tuple(q for q in self.questions if q.dimension == dimension)


@dataclass(frozen=True)
class UnscorableAnswer:
    """Diagnostic: a submitted answer outside the question's allowed set."""
    question_id: str
    field: str
    answer: Any


@dataclass(frozen=True)
class DimensionScore:
    name: str
    weighted_sum: int
    max_weighted_sum: int
    percentage: float


@dataclass(frozen=True)
class ScoreResult:
    """Per-dimension percentages plus the weighted aggregate total."""
    dimensions: Tuple[DimensionScore, ...]
    total: int
    diagnostics: Tuple[UnscorableAnswer, ...] = field(default_factory=tuple)

    @property
    def percentages(self) -> Mapping[str, float]:
        return {d.name: d.percentage for d in self.dimensions}

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'dimensions': {
                d.name: {
                    'percentage': d.percentage,
                    'weighted_sum': d.weighted_sum,
                    'max_weighted_sum': d.max_weighted_sum,
                }
                for d in self.dimensions
            },
            'unscorable': [
                {'question_id': u.question_id, 'field': u.field, 'answer': str(u.answer)}
                for u in self.diagnostics
            ],
        }
