#!/usr/bin/env python3
"""
Scoring Service - weighted rubric evaluation of a Submission.

Two levels of weighting: each question carries a weight within its
dimension, and each dimension carries a weight within the total. Answers
outside a question's allowed set score zero and are reported as diagnostics
rather than raised.
"""

import logging
import math
from typing import Any, List, Mapping, Optional, Tuple

from core.scorer.models import (
    DimensionScore,
    Question,
    Rubric,
    ScoreResult,
    UnscorableAnswer,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 away from zero for non-negatives."""
    return int(math.floor(value + 0.5))


def answer_key(answer: Any) -> str:
    return str(answer).strip().casefold()


class ScoringService:
    """
    Stateless scorer bound to one immutable Rubric.

    Safe to share across threads and requests.
    """

    def __init__(self, rubric: Rubric):
        self.rubric = rubric
        # Lookup tables built once; answer text compared trimmed and case-folded
        self._lookup = {
            q.question_id: {answer_key(a): p for a, p in q.answers.items()}
            for q in rubric.questions
        }

    def _points(
        self,
        question: Question,
        submission: Mapping[str, Any]
    ) -> Tuple[float, Optional[UnscorableAnswer]]:
        answer = submission.get(question.field)
        points = self._lookup[question.question_id].get(answer_key(answer)) if answer is not None else None
        if points is None:
            return 0.0, UnscorableAnswer(
                question_id=question.question_id,
                field=question.field,
                answer=answer
            )
        return points, None

    def score(self, submission: Mapping[str, Any]) -> ScoreResult:
        """
        Score a normalized submission.

        Never raises for bad answers; each one is logged and recorded in
        ScoreResult.diagnostics.
        """
        dimension_scores: List[DimensionScore] = []
        diagnostics: List[UnscorableAnswer] = []
        total_num = 0.0
        total_den = 0.0

        for name, dim_weight in self.rubric.dimensions.items():
            weighted_sum = 0
            max_weighted_sum = 0
            for question in self.rubric.questions_for(name):
                points, diagnostic = self._points(question, submission)
                if diagnostic is not None:
                    logger.warning(
                        f"Unscorable answer for question {question.question_id} "
                        f"(field {question.field}): {diagnostic.answer!r}"
                    )
                    diagnostics.append(diagnostic)
                weighted_sum += round_half_up(points * question.weight)
                max_weighted_sum += round_half_up(question.max_points * question.weight)

            percentage = 100.0 * weighted_sum / max_weighted_sum
            dimension_scores.append(DimensionScore(
                name=name,
                weighted_sum=weighted_sum,
                max_weighted_sum=max_weighted_sum,
                percentage=percentage
            ))
            total_num += weighted_sum * dim_weight
            total_den += max_weighted_sum * dim_weight

        total = round_half_up(100.0 * total_num / total_den)
        logger.debug(f"Scored submission: total={total}, unscorable={len(diagnostics)}")

        return ScoreResult(
            dimensions=tuple(dimension_scores),
            total=total,
            diagnostics=tuple(diagnostics)
        )
