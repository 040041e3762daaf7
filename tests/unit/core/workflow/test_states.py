#!/usr/bin/env python3
"""
Tests for workflow states and continuation tokens.
"""

import unittest

from core.workflow.states import (
    NON_TERMINAL_STATES,
    TERMINAL_STATES,
    WorkflowState,
    can_transition,
)
from core.workflow.tokens import hash_token, mint_token


class TestTransitions(unittest.TestCase):

    def test_happy_path(self):
        path = [
            WorkflowState.STARTED,
            WorkflowState.AWAITING_REPORT,
            WorkflowState.AWAITING_DECISION,
            WorkflowState.APPROVING,
            WorkflowState.COMPLETED,
        ]
        for source, target in zip(path, path[1:]):
            self.assertTrue(can_transition(source, target), f"{source} -> {target}")
        self.assertTrue(can_transition(WorkflowState.AWAITING_DECISION, WorkflowState.WAITLISTING))
        self.assertTrue(can_transition(WorkflowState.WAITLISTING, WorkflowState.COMPLETED))

    def test_failed_reachable_from_every_non_terminal_state(self):
        for state in NON_TERMINAL_STATES:
            self.assertTrue(can_transition(state, WorkflowState.FAILED))

    def test_terminal_states_are_final(self):
        self.assertEqual(TERMINAL_STATES, {WorkflowState.COMPLETED, WorkflowState.FAILED})
        for source in TERMINAL_STATES:
            self.assertTrue(source.is_terminal)
            for target in WorkflowState:
                self.assertFalse(can_transition(source, target))

    def test_no_skipping_the_decision(self):
        self.assertFalse(can_transition(WorkflowState.AWAITING_REPORT, WorkflowState.APPROVING))
        self.assertFalse(can_transition(WorkflowState.APPROVING, WorkflowState.WAITLISTING))
        self.assertFalse(can_transition(WorkflowState.STARTED, WorkflowState.COMPLETED))


class TestTokens(unittest.TestCase):

    def test_mint_returns_token_and_hash(self):
        token, token_hash = mint_token()
        self.assertEqual(hash_token(token), token_hash)
        self.assertGreaterEqual(len(token), 43)
        self.assertEqual(len(token_hash), 64)

    def test_tokens_are_unique(self):
        tokens = {mint_token()[0] for _ in range(100)}
        self.assertEqual(len(tokens), 100)

    def test_token_is_url_safe(self):
        token, _ = mint_token()
        self.assertRegex(token, r'^[A-Za-z0-9_-]+$')


if __name__ == '__main__':
    unittest.main()
