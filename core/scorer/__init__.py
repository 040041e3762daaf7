#!/usr/bin/env python3
"""
Scoring Module - weighted rubric scoring.

Public API:
- ScoringService: Scores a Submission against a Rubric
- ScoreResult: Per-dimension percentages and aggregate total
- load_rubric: Load and validate a rubric YAML file

- models.py: Data structures (Rubric, Question, ScoreResult, UnscorableAnswer)
- rubric.py: Rubric parsing and load-time validation
- service.py: ScoringService and rounding
"""

from core.scorer.models import DimensionScore, Question, Rubric, ScoreResult, UnscorableAnswer
from core.scorer.rubric import build_rubric, load_rubric, parse_rubric
from core.scorer.service import ScoringService, round_half_up

__all__ = [
    'ScoringService',
    'ScoreResult',
    'DimensionScore',
    'Rubric',
    'Question',
    'UnscorableAnswer',
    'build_rubric',
    'load_rubric',
    'parse_rubric',
    'round_half_up',
]
