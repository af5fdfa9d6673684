"""Parsed Gemini responses with derived accessors.

Both wrappers are immutable; every accessor is a pure function of the parsed
body and the transport metadata it was built with.
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import Field

from geminispeak.constants import SAFETY_WARNING_PROBABILITIES
from geminispeak.wire import (
    Candidate,
    FinishReason,
    FunctionCallPart,
    GeminiCallResult,
    GeminiEmbeddingResult,
    SafetyRating,
    TextPart,
)


def _lookup_header(headers: Dict[str, List[str]], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, values in headers.items():
        if key.lower() == wanted and values:
            return values[0]
    return None


class GeminiGenerateResponse(GeminiCallResult):
    """A generateContent response plus its HTTP status, headers and raw body.

    The primary candidate is always the first one; "best" is an alias for it.
    """

    status_code: int = Field(200, exclude=True)
    headers: Dict[str, List[str]] = Field(default_factory=dict, exclude=True)
    raw_body: Optional[str] = Field(None, exclude=True)

    @classmethod
    def from_api_response(
        cls,
        body: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, List[str]]] = None,
        status_code: int = 200,
        raw_body: Optional[str] = None,
    ) -> "GeminiGenerateResponse":
        data = dict(body or {})
        data.update(status_code=status_code, headers=headers or {}, raw_body=raw_body)
        return cls.model_validate(data)

    @classmethod
    def from_call_result(
        cls, result: GeminiCallResult, status_code: int = 200
    ) -> "GeminiGenerateResponse":
        return cls.from_api_response(result.to_dict(), status_code=status_code)

    # Candidates

    def get_best_candidate(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    def get_all_candidates(self) -> List[Candidate]:
        return list(self.candidates)

    def _primary_parts(self) -> List[Any]:
        candidate = self.get_best_candidate()
        if candidate is None or candidate.content is None:
            return []
        return list(candidate.content.parts)

    # Content

    def get_text_content(self) -> Optional[str]:
        """First non-thought text part of the primary candidate."""
        for part in self._primary_parts():
            if isinstance(part, TextPart) and not part.is_thought:
                return part.text
        return None

    def get_all_text_content(self) -> List[str]:
        return [
            part.text
            for part in self._primary_parts()
            if isinstance(part, TextPart) and not part.is_thought
        ]

    def get_thinking_content(self) -> List[str]:
        return [
            part.text
            for part in self._primary_parts()
            if isinstance(part, TextPart) and part.is_thought
        ]

    def get_tool_use_blocks(self) -> List[Dict[str, Any]]:
        """Function calls of the primary candidate as wire dicts ``{name, args}``."""
        return [
            part.function_call.to_dict()
            for part in self._primary_parts()
            if isinstance(part, FunctionCallPart)
        ]

    def get_safety_ratings(self) -> List[SafetyRating]:
        candidate = self.get_best_candidate()
        return list(candidate.safety_ratings) if candidate else []

    def get_citation_metadata(self) -> Dict[str, Any]:
        candidate = self.get_best_candidate()
        if candidate is None or candidate.citation_metadata is None:
            return {}
        return dict(candidate.citation_metadata)

    def get_all_candidates_text_content(self) -> Dict[int, str]:
        """Joined non-thought text per candidate position; candidates without text are skipped."""
        texts: Dict[int, str] = {}
        for position, candidate in enumerate(self.candidates):
            if candidate.content is None:
                continue
            chunks = [
                part.text
                for part in candidate.content.parts
                if isinstance(part, TextPart) and not part.is_thought
            ]
            if chunks:
                texts[position] = "".join(chunks)
        return texts

    # Status

    def get_finish_reason(self) -> Optional[str]:
        candidate = self.get_best_candidate()
        return candidate.finish_reason if candidate else None

    def completed_naturally(self) -> bool:
        return self.get_finish_reason() == FinishReason.STOP.value

    def was_stopped_by_token_limit(self) -> bool:
        return self.get_finish_reason() == FinishReason.MAX_TOKENS.value

    def was_blocked_by_safety(self) -> bool:
        return self.get_finish_reason() == FinishReason.SAFETY.value

    def was_stopped_by_recitation(self) -> bool:
        return self.get_finish_reason() == FinishReason.RECITATION.value

    def was_stopped_by_language(self) -> bool:
        return self.get_finish_reason() == FinishReason.LANGUAGE.value

    def used_tools(self) -> bool:
        return bool(self.get_tool_use_blocks())

    def used_thinking(self) -> bool:
        return self.get_thinking_tokens() > 0 or bool(self.get_thinking_content())

    def is_successful(self) -> bool:
        return 200 <= self.status_code < 300

    def get_header(self, name: str) -> Optional[str]:
        return _lookup_header(self.headers, name)

    # Tokens

    def get_total_tokens(self) -> int:
        return self.usage_metadata.total_token_count or 0

    def get_input_tokens(self) -> int:
        return self.usage_metadata.prompt_token_count or 0

    def get_output_tokens(self) -> int:
        return self.usage_metadata.candidates_token_count or 0

    def get_thinking_tokens(self) -> int:
        return self.usage_metadata.thoughts_token_count or 0

    def get_thinking_ratio(self) -> float:
        """Thinking tokens as a percentage of total tokens."""
        total = self.get_total_tokens()
        return (self.get_thinking_tokens() / total) * 100 if total > 0 else 0.0

    def used_caching(self) -> bool:
        return self.get_cached_tokens() > 0

    def get_cached_tokens(self) -> int:
        return self.usage_metadata.cached_content_token_count or 0

    def get_cache_efficiency(self) -> float:
        """Cached tokens as a percentage of input tokens."""
        prompt = self.get_input_tokens()
        return (self.get_cached_tokens() / prompt) * 100 if prompt > 0 else 0.0

    # Safety

    def has_safety_warnings(self) -> bool:
        return bool(self.get_safety_warnings())

    def get_safety_warnings(self) -> List[Dict[str, Any]]:
        return [
            {
                "category": rating.category or "UNKNOWN",
                "probability": rating.probability,
                "blocked": bool(rating.blocked),
            }
            for rating in self.get_safety_ratings()
            if rating.probability in SAFETY_WARNING_PROBABILITIES
        ]

    # Summaries

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            "model_version": self.model_version,
            "candidate_count": len(self.candidates),
            "total_tokens": self.get_total_tokens(),
            "thinking_tokens": self.get_thinking_tokens(),
            "finish_reason": self.get_finish_reason(),
            "used_tools": self.used_tools(),
            "used_thinking": self.used_thinking(),
            "used_caching": self.used_caching(),
            "safety_warnings": self.has_safety_warnings(),
            "status_code": self.status_code,
        }

    def to_summary(self) -> Dict[str, Any]:
        return {
            "text_content": self.get_text_content(),
            "tool_calls": self.get_tool_use_blocks(),
            "thinking_content": self.get_thinking_content(),
            "finish_reason": self.get_finish_reason(),
            "usage": {
                "input_tokens": self.get_input_tokens(),
                "output_tokens": self.get_output_tokens(),
                "thinking_tokens": self.get_thinking_tokens(),
                "total_tokens": self.get_total_tokens(),
                "thinking_ratio": round(self.get_thinking_ratio(), 2),
            },
            "safety": {
                "has_warnings": self.has_safety_warnings(),
                "warnings": self.get_safety_warnings(),
            },
            "metadata": {
                "model_version": self.model_version,
                "candidate_count": len(self.candidates),
                "used_caching": self.used_caching(),
                "cache_efficiency": round(self.get_cache_efficiency(), 2),
            },
        }


class GeminiEmbeddingsResponse(GeminiEmbeddingResult):
    """An embedContent response plus HTTP status and headers, with vector math.

    Two-vector operations return None when either side lacks values or the
    dimensions differ.
    """

    status_code: int = Field(200, exclude=True)
    headers: Dict[str, List[str]] = Field(default_factory=dict, exclude=True)

    @classmethod
    def from_api_response(
        cls,
        body: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, List[str]]] = None,
        status_code: int = 200,
    ) -> "GeminiEmbeddingsResponse":
        data = dict(body or {})
        data.update(status_code=status_code, headers=headers or {})
        return cls.model_validate(data)

    @classmethod
    def from_embedding_result(
        cls, result: GeminiEmbeddingResult, status_code: int = 200
    ) -> "GeminiEmbeddingsResponse":
        return cls.from_api_response(result.to_dict(), status_code=status_code)

    # Values

    def get_embedding_values(self) -> Optional[List[float]]:
        if self.embedding is None:
            return None
        return list(self.embedding.values)

    def has_embedding(self) -> bool:
        return bool(self.get_embedding_values())

    def get_dimensions(self) -> Optional[int]:
        values = self.get_embedding_values()
        return len(values) if values else None

    def get_first_n_values(self, n: int = 5) -> Optional[List[float]]:
        values = self.get_embedding_values()
        return values[:n] if values else None

    def get_last_n_values(self, n: int = 5) -> Optional[List[float]]:
        values = self.get_embedding_values()
        return values[-n:] if values and n > 0 else None

    # Single-vector math

    def get_embedding_magnitude(self) -> Optional[float]:
        """L2 norm of the embedding."""
        values = self.get_embedding_values()
        if not values:
            return None
        return math.sqrt(sum(x * x for x in values))

    def get_normalized_embedding(self) -> Optional[List[float]]:
        values = self.get_embedding_values()
        magnitude = self.get_embedding_magnitude()
        if not values or not magnitude:
            return None
        return [x / magnitude for x in values]

    def get_embedding_statistics(self) -> Optional[Dict[str, float]]:
        values = self.get_embedding_values()
        if not values:
            return None
        count = len(values)
        total = sum(values)
        mean = total / count
        variance = sum((x - mean) ** 2 for x in values) / count
        return {
            "count": count,
            "mean": mean,
            "variance": variance,
            "std_deviation": math.sqrt(variance),
            "min": min(values),
            "max": max(values),
            "magnitude": self.get_embedding_magnitude(),
            "sum": total,
        }

    def get_mean(self) -> Optional[float]:
        values = self.get_embedding_values()
        return sum(values) / len(values) if values else None

    def get_standard_deviation(self) -> Optional[float]:
        stats = self.get_embedding_statistics()
        return stats["std_deviation"] if stats else None

    def get_range(self) -> Optional[Dict[str, float]]:
        values = self.get_embedding_values()
        if not values:
            return None
        low, high = min(values), max(values)
        return {"min": low, "max": high, "span": high - low}

    # Two-vector math

    def _paired_values(self, other: "GeminiEmbeddingsResponse"):
        mine = self.get_embedding_values()
        theirs = other.get_embedding_values()
        if not mine or not theirs or len(mine) != len(theirs):
            return None
        return mine, theirs

    def dot_product(self, other: "GeminiEmbeddingsResponse") -> Optional[float]:
        paired = self._paired_values(other)
        if paired is None:
            return None
        return sum(a * b for a, b in zip(*paired))

    def cosine_similarity(self, other: "GeminiEmbeddingsResponse") -> Optional[float]:
        dot = self.dot_product(other)
        mine = self.get_embedding_magnitude()
        theirs = other.get_embedding_magnitude()
        if dot is None or not mine or not theirs:
            return None
        return dot / (mine * theirs)

    def euclidean_distance(self, other: "GeminiEmbeddingsResponse") -> Optional[float]:
        paired = self._paired_values(other)
        if paired is None:
            return None
        return math.sqrt(sum((a - b) ** 2 for a, b in zip(*paired)))

    # Quality

    def has_nan_values(self) -> bool:
        return any(math.isnan(x) for x in self.get_embedding_values() or [])

    def has_infinite_values(self) -> bool:
        return any(math.isinf(x) for x in self.get_embedding_values() or [])

    def is_valid_embedding(self) -> bool:
        if not self.has_embedding() or self.has_nan_values() or self.has_infinite_values():
            return False
        return (self.get_embedding_magnitude() or 0.0) > 0

    # Status

    def is_successful(self) -> bool:
        return 200 <= self.status_code < 300

    def get_header(self, name: str) -> Optional[str]:
        """First value of a header, matched case-insensitively."""
        return _lookup_header(self.headers, name)

    def to_summary(self) -> Dict[str, Any]:
        return {
            "has_embedding": self.has_embedding(),
            "dimensions": self.get_dimensions(),
            "magnitude": self.get_embedding_magnitude(),
            "is_valid": self.is_valid_embedding(),
            "status_code": self.status_code,
            "statistics": self.get_embedding_statistics(),
            "response_successful": self.is_successful(),
        }

    def debug_info(self) -> Dict[str, Any]:
        return {
            "class": type(self).__name__,
            "has_embedding": self.has_embedding(),
            "dimensions": self.get_dimensions(),
            "status_code": self.status_code,
            "is_valid": self.is_valid_embedding(),
            "first_5_values": self.get_first_n_values(5),
            "last_5_values": self.get_last_n_values(5),
            "magnitude": self.get_embedding_magnitude(),
            "mean": self.get_mean(),
        }
