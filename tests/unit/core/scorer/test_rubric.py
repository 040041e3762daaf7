#!/usr/bin/env python3
"""
Tests for rubric loading and validation.
"""

import copy
import os
import tempfile
import unittest

import yaml

from core.errors import ConfigurationError
from core.scorer import load_rubric, parse_rubric
from tests.mocks.workflow_mocks import RUBRIC_DATA


class TestParseRubric(unittest.TestCase):

    def setUp(self):
        self.data = copy.deepcopy(RUBRIC_DATA)

    def test_valid_rubric(self):
        rubric = parse_rubric(self.data)
        self.assertEqual(rubric.version, 'test')
        self.assertEqual(dict(rubric.dimensions), {'community': 2, 'environment': 1})
        self.assertEqual(len(rubric.questions), 3)
        self.assertEqual(
            [q.question_id for q in rubric.questions_for('community')],
            ['beneficiaries', 'local-employment']
        )

    def test_field_defaults_to_id(self):
        del self.data['questions'][0]['field']
        rubric = parse_rubric(self.data)
        self.assertEqual(rubric.questions[0].field, 'beneficiaries')

    def test_rubric_is_immutable(self):
        rubric = parse_rubric(self.data)
        with self.assertRaises(TypeError):
            rubric.dimensions['community'] = 5
        with self.assertRaises(TypeError):
            rubric.questions[0].answers['Over 1000'] = 10
        with self.assertRaises(AttributeError):
            rubric.version = 'changed'

    def test_unknown_dimension(self):
        self.data['questions'][0]['dimension'] = 'governance'
        with self.assertRaisesRegex(ConfigurationError, "unknown dimension 'governance'"):
            parse_rubric(self.data)

    def test_dimension_without_questions(self):
        self.data['dimensions']['governance'] = 1
        with self.assertRaisesRegex(ConfigurationError, "'governance' has no questions"):
            parse_rubric(self.data)

    def test_non_positive_weights(self):
        self.data['dimensions']['community'] = 0
        self.data['questions'][2]['weight'] = -1
        with self.assertRaises(ConfigurationError) as ctx:
            parse_rubric(self.data)
        message = str(ctx.exception)
        self.assertIn("dimension 'community' has non-positive weight", message)
        self.assertIn("question 'water-source' has non-positive weight", message)

    def test_zero_maximum(self):
        self.data['questions'][2]['answers'] = {'Rainwater': 0, 'Municipal': 0}
        with self.assertRaisesRegex(ConfigurationError, "maximum score of zero"):
            parse_rubric(self.data)

    def test_question_without_answers(self):
        self.data['questions'][1]['answers'] = {}
        with self.assertRaisesRegex(ConfigurationError, "declares no scored answers"):
            parse_rubric(self.data)

    def test_negative_points(self):
        self.data['questions'][1]['answers']['No'] = -1
        with self.assertRaisesRegex(ConfigurationError, "negative points"):
            parse_rubric(self.data)

    def test_answers_differing_only_in_case_or_spacing(self):
        self.data['questions'][1]['answers']['yes'] = 0
        self.data['questions'][2]['answers'][' Rainwater '] = 1
        with self.assertRaises(ConfigurationError) as ctx:
            parse_rubric(self.data)
        self.assertIn("answers 'Yes' and 'yes' are indistinguishable", str(ctx.exception))
        self.assertIn("answers 'Rainwater' and ' Rainwater ' are indistinguishable", str(ctx.exception))

    def test_duplicate_ids_and_fields(self):
        self.data['questions'].append(copy.deepcopy(self.data['questions'][0]))
        with self.assertRaises(ConfigurationError) as ctx:
            parse_rubric(self.data)
        self.assertIn("question id 'beneficiaries' is duplicated", str(ctx.exception))
        self.assertIn("field 'beneficiaries' is scored by more than one question", str(ctx.exception))

    def test_structurally_invalid(self):
        with self.assertRaises(ConfigurationError):
            parse_rubric({'dimensions': 'nope'})
        with self.assertRaises(ConfigurationError):
            parse_rubric(None)


class TestLoadRubric(unittest.TestCase):

    def test_load_from_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'rubric.yaml')
            with open(path, 'w') as f:
                yaml.safe_dump(RUBRIC_DATA, f)
            rubric = load_rubric(path)
        self.assertEqual(len(rubric.questions), 3)

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_rubric('/nonexistent/rubric.yaml')

    def test_invalid_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'rubric.yaml')
            with open(path, 'w') as f:
                f.write("dimensions: [unclosed\n")
            with self.assertRaises(ConfigurationError):
                load_rubric(path)

    def test_shipped_rubric_is_valid(self):
        root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(
            os.path.dirname(os.path.abspath(__file__))))))
        rubric = load_rubric(os.path.join(root, 'rubric.yaml'))
        self.assertIn('community', rubric.dimensions)
        self.assertIn('environment', rubric.dimensions)


if __name__ == '__main__':
    unittest.main()
