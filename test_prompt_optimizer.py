"""
Tests for the prompt length optimizer.
"""
import pytest

from dance_video.prompt_optimizer import optimize_prompt

SAMPLES = [
    "Portrait of a woman, highly detailed, soft light, Soft Light, studio",
    "Hyper-realistic photo of a dancer, very very elegant pose, best quality, masterpiece, golden hour, golden hour, 8K",
    "a b c, dddd, eeee, ffff, gggg",
    "   lots   of    whitespace ,  and , , stray commas ,  ",
    "one enormous clause without any separators that just keeps going and going well past every budget we try",
    "very, really, super amazing",
    "",
]
BUDGETS = [4, 10, 25, 40, 80, 200]


class TestOptimizePrompt:
    def test_within_budget_only_normalizes(self):
        assert optimize_prompt("  a   dancer,\n very elegant  ", 100) == "a dancer, very elegant"

    def test_strips_fillers_and_duplicate_clauses(self):
        prompt = "Portrait of a woman, highly detailed, soft light, Soft Light, studio"
        assert optimize_prompt(prompt, 45) == "Portrait of a woman, soft light, studio"

    def test_keeps_first_seen_casing(self):
        prompt = "Dancer on stage, Neon Lights, neon lights, NEON LIGHTS, smoke machine haze"
        assert optimize_prompt(prompt, 40) == "Dancer on stage, Neon Lights"

    def test_drops_trailing_clauses_that_overflow(self):
        assert optimize_prompt("a b c, dddd, eeee", 10) == "a b c"

    def test_hyphenated_words_are_not_split(self):
        prompt = "Hyper-realistic portrait, ultra-wide lens, very sharp focus, extra clause to overflow"
        result = optimize_prompt(prompt, 60)
        assert result.startswith("Hyper-realistic portrait, ultra-wide lens")
        assert "very" not in result

    def test_prompt_of_only_fillers_becomes_empty(self):
        assert optimize_prompt("very, really, super amazing", 5) == ""

    def test_oversized_first_clause_is_cut_to_budget(self):
        prompt = "word " * 50
        result = optimize_prompt(prompt, 30)
        assert len(result) <= 30
        assert result.endswith("...")

    @pytest.mark.parametrize("prompt", SAMPLES)
    @pytest.mark.parametrize("budget", BUDGETS)
    def test_idempotent(self, prompt, budget):
        once = optimize_prompt(prompt, budget)
        assert optimize_prompt(once, budget) == once

    @pytest.mark.parametrize("prompt", SAMPLES)
    @pytest.mark.parametrize("budget", BUDGETS)
    def test_respects_budget(self, prompt, budget):
        assert len(optimize_prompt(prompt, budget)) <= budget

    def test_first_clause_is_prefix(self):
        prompt = "Portrait of a dancer in red, very bright light, soft shadows, city background, film grain"
        result = optimize_prompt(prompt, 40)
        assert result.startswith("Portrait of a dancer in red")

    def test_first_clause_kept_modulo_fillers(self):
        prompt = "A truly elegant dancer, studio, studio lights, stage smoke, extra words here"
        result = optimize_prompt(prompt, 30)
        assert result.startswith("A elegant dancer")

    @pytest.mark.parametrize("budget", [0, -1, -20])
    def test_non_positive_budget_gives_empty(self, budget):
        prompt = "one enormous clause without any separators, second clause"
        assert optimize_prompt(prompt, budget) == ""
        assert optimize_prompt("", budget) == ""
