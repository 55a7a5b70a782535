"""Tests for the per-model system instructions."""

import pytest

from promptopt.instructions import (
    ANTI_HALLUCINATION_INSTRUCTION,
    DEFAULT_BLOCK,
    FINAL_OUTPUT_INSTRUCTION,
    INSTRUCTION_BLOCKS,
    build_instruction,
)
from promptopt.models import TargetModel


@pytest.mark.parametrize("target", list(TargetModel) + ["mistral", None, ""])
def test_every_instruction_has_shared_constraints(target):
    text = build_instruction(target)
    assert ANTI_HALLUCINATION_INSTRUCTION in text
    assert FINAL_OUTPUT_INSTRUCTION in text


def test_instruction_table_covers_closed_set():
    assert set(INSTRUCTION_BLOCKS) == set(TargetModel)


def test_model_specific_markers():
    assert "<optimization_framework>" in build_instruction(TargetModel.ANTHROPIC)
    assert "Claude" in build_instruction(TargetModel.ANTHROPIC)
    assert "<gemini_optimization_framework>" in build_instruction(TargetModel.GEMINI)
    assert "<openai_optimization_framework>" in build_instruction(TargetModel.CHATGPT)
    assert "### Instruction ###" in build_instruction(TargetModel.LLAMA)


def test_strings_and_enum_members_are_equivalent():
    assert build_instruction("anthropic") == build_instruction(TargetModel.ANTHROPIC)
    assert build_instruction(" LLAMA ") == build_instruction(TargetModel.LLAMA)


def test_unknown_target_uses_default():
    assert build_instruction("unknown") == DEFAULT_BLOCK.render()
    assert build_instruction("unknown").startswith("You are a world-class prompt engineering expert.")


def test_deterministic_and_distinct():
    texts = {m: build_instruction(m) for m in TargetModel}
    assert all(build_instruction(m) == texts[m] for m in TargetModel)
    assert len(set(texts.values())) == len(TargetModel)


def test_final_constraint_ends_instruction():
    for model in TargetModel:
        assert build_instruction(model).endswith(FINAL_OUTPUT_INSTRUCTION)
