"""
Runs the in-module _run_unit_tests() checks so they stay green alongside the pytest suite.
"""

import importlib

import pytest

MODULES_WITH_SELF_CHECKS = [
    "judge",
    "wife_model",
    "score_matcher",
    "confirmation_tracker",
    "note_matcher",
    "replay_analyzer",
    "score_ocr",
]


@pytest.mark.parametrize("module_name", MODULES_WITH_SELF_CHECKS)
def test_module_self_checks(module_name):
    module = importlib.import_module(module_name)
    module._run_unit_tests()
