"""Generation quality metrics: BLEU-N and ROUGE-1/2/L.

Text is tokenized by lower-casing and splitting on whitespace. Every metric
returns 0.0 when either side is empty after tokenization.
"""

import math
from collections import Counter
from enum import StrEnum
from typing import TypeAlias

from rag_eval.metrics.domain.errors import MetricInputError
from rag_eval.metrics.domain.input import MetricInput

NGram: TypeAlias = tuple[str, ...]


def tokenize(text: str) -> list[str]:
    return text.lower().split()


def ngram_counts(tokens: list[str], n: int) -> Counter[NGram]:
    """Count the contiguous n-grams of tokens; empty when there are fewer than n."""
    return Counter(tuple(tokens[i : i + n]) for i in range(len(tokens) - n + 1))


def lcs_length(a: list[str], b: list[str]) -> int:
    """Length of the longest common subsequence of two token sequences.

    Classic dynamic programming over an (len(a)+1) x (len(b)+1) table.
    """
    table = [[0] * (len(b) + 1) for _ in range(len(a) + 1)]
    for i in range(1, len(a) + 1):
        for j in range(1, len(b) + 1):
            if a[i - 1] == b[j - 1]:
                table[i][j] = table[i - 1][j - 1] + 1
            else:
                table[i][j] = max(table[i - 1][j], table[i][j - 1])
    return table[len(a)][len(b)]


def _require_texts(name: str, metric_input: MetricInput) -> None:
    if not metric_input.generated_text.strip() or not metric_input.expected_text.strip():
        raise MetricInputError(
            metric=name, reason="generated_text and expected_text are required"
        )


class BLEUMetric:
    """BLEU-N with clipped modified precision and a brevity penalty.

    The N modified precisions are combined as a geometric mean with uniform
    weights 1/N. Orders whose precision is zero are left out of the log-sum;
    if no order has any overlap at all the score is 0.0.
    """

    def __init__(self, max_n: int = 4) -> None:
        if max_n < 1:
            raise ValueError(f"max_n must be >= 1, got {max_n}")
        self.max_n = max_n

    @property
    def name(self) -> str:
        return f"bleu-{self.max_n}"

    def compute(self, metric_input: MetricInput) -> float:
        candidate = tokenize(metric_input.generated_text)
        reference = tokenize(metric_input.expected_text)
        if not candidate or not reference:
            return 0.0

        precisions = [
            self._modified_precision(candidate, reference, n)
            for n in range(1, self.max_n + 1)
        ]
        if not any(precisions):
            return 0.0

        weight = 1.0 / self.max_n
        log_sum = sum(weight * math.log(p) for p in precisions if p > 0)
        penalty = self._brevity_penalty(len(candidate), len(reference))
        return penalty * math.exp(log_sum)

    def _modified_precision(
        self, candidate: list[str], reference: list[str], n: int
    ) -> float:
        candidate_counts = ngram_counts(candidate, n)
        total = sum(candidate_counts.values())
        if total == 0:
            return 0.0
        reference_counts = ngram_counts(reference, n)
        clipped = sum(
            min(count, reference_counts[gram])
            for gram, count in candidate_counts.items()
        )
        return clipped / total

    def _brevity_penalty(self, candidate_len: int, reference_len: int) -> float:
        if candidate_len == 0:
            return 0.0
        if candidate_len >= reference_len:
            return 1.0
        return math.exp(1.0 - reference_len / candidate_len)

    def validate(self, metric_input: MetricInput) -> None:
        _require_texts(self.name, metric_input)


class RougeType(StrEnum):
    ROUGE_1 = "rouge1"
    ROUGE_2 = "rouge2"
    ROUGE_L = "rougel"


class ROUGEMetric:
    """Symmetric ROUGE-1, ROUGE-2 or ROUGE-L.

    ROUGE-N divides the clipped n-gram overlap by the larger of the two n-gram
    totals; ROUGE-L divides the LCS length by the longer token sequence.
    """

    def __init__(self, rouge_type: RougeType) -> None:
        self.rouge_type = rouge_type

    @property
    def name(self) -> str:
        return str(self.rouge_type)

    def compute(self, metric_input: MetricInput) -> float:
        candidate = tokenize(metric_input.generated_text)
        reference = tokenize(metric_input.expected_text)
        if not candidate or not reference:
            return 0.0

        match self.rouge_type:
            case RougeType.ROUGE_1:
                return self._rouge_n(candidate, reference, 1)
            case RougeType.ROUGE_2:
                return self._rouge_n(candidate, reference, 2)
            case RougeType.ROUGE_L:
                return lcs_length(candidate, reference) / max(
                    len(candidate), len(reference)
                )

    def _rouge_n(self, candidate: list[str], reference: list[str], n: int) -> float:
        candidate_counts = ngram_counts(candidate, n)
        reference_counts = ngram_counts(reference, n)
        denominator = max(
            sum(candidate_counts.values()), sum(reference_counts.values())
        )
        if denominator == 0:
            return 0.0
        overlap = sum((candidate_counts & reference_counts).values())
        return overlap / denominator

    def validate(self, metric_input: MetricInput) -> None:
        _require_texts(self.name, metric_input)
