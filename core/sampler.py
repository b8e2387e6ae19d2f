"""Question selection: adaptive weighted sampling and option assembly."""

import random
from typing import Sequence

from .catalog import Catalog
from .config import MAX_OPTIONS_PER_QUESTION, ADAPTIVE_WEIGHT_FACTOR, MIN_SAMPLING_WEIGHT
from .difficulty import DifficultyModel
from .errors import EmptyPool
from .models import Term, Question


def sampling_weight(difficulty: float, weight_factor: float) -> float:
    """Linear boost above baseline difficulty, floored at MIN_SAMPLING_WEIGHT."""
    return max(MIN_SAMPLING_WEIGHT, 1 + weight_factor * (difficulty - 1))


def weighted_sample(pool: Sequence, weights: Sequence[float], rng: random.Random | None = None):
    """Pick one element with probability proportional to its weight.

    Falls back to a uniform choice when the weights sum to zero or less.
    """
    rng = rng or random
    total = sum(weights)
    if total <= 0:
        return pool[rng.randrange(len(pool))]
    r = rng.random() * total
    for item, weight in zip(pool, weights):
        r -= weight
        if r <= 0:
            return item
    return pool[-1]


def shuffled(items: Sequence, rng: random.Random | None = None) -> list:
    """Fisher-Yates shuffle into a new list."""
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def build_question(catalog: Catalog,
                   topic: str | None = None,
                   max_options: int = MAX_OPTIONS_PER_QUESTION,
                   forced_subset: Sequence[str] | None = None,
                   adaptive: bool = False,
                   weight_factor: float = ADAPTIVE_WEIGHT_FACTOR,
                   difficulty: DifficultyModel | None = None,
                   rng: random.Random | None = None) -> Question:
    """Pick a prompt term and assemble its shuffled option labels.

    Raises EmptyPool if no term matches the topic or the forced subset. Returns
    fewer than max_options options when the catalog has fewer distinct terms.
    """
    rng = rng or random
    max_options = max(2, max_options)

    topic_pool = catalog.by_topic(topic)
    if not topic_pool:
        raise EmptyPool(f"no terms for topic {topic!r}")

    pool = topic_pool
    if forced_subset:
        wanted = {s.lower() for s in forced_subset}
        pool = [t for t in topic_pool if t.source_text.lower() in wanted]
        if not pool:
            raise EmptyPool(f"none of {sorted(wanted)} in topic {topic!r}")

    if adaptive and not forced_subset and difficulty is not None:
        weights = [
            sampling_weight(difficulty.difficulty_of(t.topic, t.source_text), weight_factor)
            for t in pool
        ]
        prompt = weighted_sample(pool, weights, rng)
    else:
        prompt = pool[rng.randrange(len(pool))]

    distractors = _distractor_candidates(prompt, topic_pool)
    if not distractors:
        distractors = _distractor_candidates(prompt, catalog.entries)
    picked = shuffled(distractors, rng)[:max_options - 1]

    labels = shuffled([prompt.source_text] + [t.source_text for t in picked], rng)
    return Question(prompt, tuple(labels), labels.index(prompt.source_text))


def _distractor_candidates(prompt: Term, terms: Sequence[Term]) -> list[Term]:
    """Terms other than the prompt, one per distinct source text."""
    seen = {prompt.source_text.lower()}
    result = []
    for term in terms:
        key = term.source_text.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(term)
    return result
