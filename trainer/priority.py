"""Ranking of lesson sentences by learning difficulty."""

import hashlib
import json
from typing import Iterable, List, Tuple

from trainer.schemas import AnalyticsItem, Example, PrioritySentence

BASE_PRIORITY = 1
ERROR_WEIGHT = 2
MAX_ERROR_BONUS = 10
KEY_CONSTRUCTION_BONUS = 5
FREQUENT_PHRASE_BONUS = 3

# Note markers as authored in lesson files (matched as case-sensitive substrings)
KEY_CONSTRUCTION_MARKERS = ("ключев", "важн", "основн")
FREQUENT_PHRASE_MARKERS = ("част", "распростран", "популярн")

SELECTION_FRACTION_DENOMINATOR = 5  # 20% of a lesson
MIN_SELECTION = 5

SentenceKey = Tuple[str, str, str]


def sentence_key(lesson_id: str, russian: str, english: str) -> SentenceKey:
    return (lesson_id, russian, english)


def sentence_id(lesson_id: str, russian: str, english: str) -> str:
    """Deterministic id of a sentence pair within a lesson"""
    payload = json.dumps(sentence_key(lesson_id, russian, english), ensure_ascii=False)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


def count_sentence_errors(errors: Iterable[AnalyticsItem]) -> dict:
    """Number of error-log entries per (lesson, russian, english)"""
    counts = {}
    for item in errors:
        key = sentence_key(item.lesson_id, item.sentence.russian, item.sentence.english)
        counts[key] = counts.get(key, 0) + 1
    return counts


def score_example(example: Example, error_count: int) -> int:
    """Priority of one example: base score plus error and note bonuses"""
    priority = BASE_PRIORITY
    if error_count > 0:
        priority += min(error_count * ERROR_WEIGHT, MAX_ERROR_BONUS)

    note = example.note or ""
    if any(marker in note for marker in KEY_CONSTRUCTION_MARKERS):
        priority += KEY_CONSTRUCTION_BONUS
    if any(marker in note for marker in FREQUENT_PHRASE_MARKERS):
        priority += FREQUENT_PHRASE_BONUS
    return priority


def selection_size(total: int) -> int:
    """max(ceil(20% of total), min(5, total))"""
    if total <= 0:
        return 0
    twenty_percent = -(-total // SELECTION_FRACTION_DENOMINATOR)
    return max(twenty_percent, min(MIN_SELECTION, total))


def rank_sentences(
    lesson_id: str,
    examples: List[Example],
    errors: Iterable[AnalyticsItem]
) -> List[PrioritySentence]:
    """
    Score every example of a lesson and keep the top fraction.

    Sorting is stable, so equal priorities keep the authored order.
    """
    error_counts = count_sentence_errors(errors)

    sentences = []
    for example in examples:
        error_count = error_counts.get(sentence_key(lesson_id, example.russian, example.english), 0)
        sentences.append(PrioritySentence(
            id=sentence_id(lesson_id, example.russian, example.english),
            russian=example.russian,
            english=example.english,
            priority=score_example(example, error_count),
            error_count=error_count,
            source=example.source,
        ))

    sentences.sort(key=lambda s: s.priority, reverse=True)
    return sentences[:selection_size(len(sentences))]
