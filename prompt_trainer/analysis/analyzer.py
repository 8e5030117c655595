"""Prompt quality analysis"""

import re
from typing import List

from prompt_trainer.models.analysis import PromptAnalysis


PRECISION_TERMS = re.compile(r"\b(specific|exactly|precisely|detailed)\b", re.IGNORECASE)
SEQUENCING_TERMS = re.compile(r"\b(first|second|then|finally|step)\b", re.IGNORECASE)
SENTENCE_TERMINATORS = re.compile(r"[.!?]+")

SUGGESTION_THRESHOLD = 60
MIN_DETAILED_WORDS = 10


def _clamp(score: int) -> int:
    return min(100, max(0, score))


class PromptAnalyzer:
    """Fixed heuristic scorer for prompt clarity, specificity and structure"""

    @staticmethod
    def count_words(text: str) -> int:
        return len(text.split())

    @staticmethod
    def count_sentences(text: str) -> int:
        return sum(1 for part in SENTENCE_TERMINATORS.split(text) if part.strip())

    @staticmethod
    def analyze(text: str) -> PromptAnalysis:
        """
        Score a prompt

        Pure and deterministic. Empty or whitespace-only text has no
        meaningful score and is rejected with ValueError.
        """
        if not text or not text.strip():
            raise ValueError("Cannot analyze an empty prompt")

        words = PromptAnalyzer.count_words(text)
        sentences = PromptAnalyzer.count_sentences(text)

        clarity = _clamp(
            (50 if words > 10 else words * 5)
            + (30 if sentences > 1 else 0)
            + (20 if "?" in text else 0)
        )

        specificity = _clamp(
            (60 if words > 20 else words * 3)
            + len(PRECISION_TERMS.findall(text)) * 10
        )

        structure = _clamp(
            (40 if sentences > 2 else sentences * 20)
            + len(SEQUENCING_TERMS.findall(text)) * 15
        )

        return PromptAnalysis(
            clarity=clarity,
            specificity=specificity,
            structure=structure,
            suggestions=PromptAnalyzer.suggest_improvements(
                clarity, specificity, structure, words
            ),
            word_count=words,
            sentence_count=sentences,
            character_count=len(text),
        )

    @staticmethod
    def suggest_improvements(
        clarity: int,
        specificity: int,
        structure: int,
        word_count: int,
    ) -> List[str]:
        """Suggestions in fixed order; each rule is independent"""
        suggestions = []

        if clarity < SUGGESTION_THRESHOLD:
            suggestions.append("Add more context and clear instructions")
        if specificity < SUGGESTION_THRESHOLD:
            suggestions.append("Be more specific about desired output format")
        if structure < SUGGESTION_THRESHOLD:
            suggestions.append("Break down complex requests into steps")
        if word_count < MIN_DETAILED_WORDS:
            suggestions.append("Provide more detailed requirements")

        return suggestions


def analyze(text: str) -> PromptAnalysis:
    """Module-level shortcut for PromptAnalyzer.analyze"""
    return PromptAnalyzer.analyze(text)
