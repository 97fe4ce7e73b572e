"""Puzzle service: generation with fallbacks, and answer validation.

Generation order for each requested puzzle:
1. The LLM (when configured and local mode is off); new puzzles are stored
   in the background so later players can get them without an LLM call.
2. A random stored puzzle the player has not seen.
3. A built-in puzzle the player has not seen (any built-in one as a last resort).

Validation first compares normalized answers locally and only asks the LLM
to judge when that fails.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
import uuid
from typing import Any, Sequence

from escape_api.adapters.llm.base import AbstractLLMClient
from escape_api.adapters.storage.base import AbstractGameRepository, AuditRecord
from escape_api.core.errors import LLMAppError, NotFoundAppError, ValidationAppError
from escape_api.schemas.puzzle import (
    FALLBACK_PUZZLES,
    PUZZLE_TYPES,
    Puzzle,
    PuzzleRequest,
    ValidationResult,
    find_fallback_puzzle,
)
from escape_api.utils.metrics import MetricsCollector, metrics as default_metrics
from escape_api.utils.retry import DB_RETRY_CONFIG, RetryConfig, with_retry
from escape_api.utils.text_normalizer import are_answers_equal

logger = logging.getLogger(__name__)

PUZZLE_SYSTEM_PROMPT = (
    "You are a puzzle generator. You must return JSON only (no explanation, no commentary). "
    'The JSON must have keys: "question" (string), "answer" (string), '
    '"type" (one of "riddle","cipher","math"). '
    'If "type" is "math" keep the math question simple (single-step arithmetic). '
    'If "type" is "cipher", include the encoded text only (e.g. ROT13). Output valid JSON only.'
)

PUZZLE_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["question", "answer", "type"],
    "properties": {
        "question": {"type": "string", "description": "The puzzle question"},
        "answer": {"type": "string", "description": "The correct answer"},
        "type": {"type": "string", "enum": list(PUZZLE_TYPES), "description": "The puzzle type"},
    },
}

JUDGE_SYSTEM_PROMPT = (
    "You grade answers to escape room puzzles. Return JSON only with keys "
    '"correct" (boolean), "confidence" (number between 0 and 1) and '
    '"explanation" (one short sentence). Accept synonyms, spelling slips and '
    "equivalent numeric forms; reject anything that changes the meaning."
)

JUDGE_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["correct"],
    "properties": {
        "correct": {"type": "boolean"},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        "explanation": {"type": "string"},
    },
}


def build_puzzle_prompt(puzzle_type: str, topic: str | None = None) -> str:
    """Build the user prompt for generating one puzzle.

    Raises:
        ValidationAppError: If ``puzzle_type`` is not a known type.
    """
    if puzzle_type not in PUZZLE_TYPES:
        raise ValidationAppError(
            code="invalid_puzzle_type",
            message=f"Invalid type requested: {puzzle_type}",
            details={"puzzle_type": str(puzzle_type)},
        )

    topic_clause = f" Topic: {topic.strip()}." if topic and topic.strip() else ""
    return (
        f"Create a short and fun {puzzle_type} puzzle suitable for an escape room."
        f"{topic_clause} Return JSON only."
    )


def build_judge_prompt(puzzle: Puzzle, user_answer: str) -> str:
    return (
        f"Puzzle: {puzzle.question}\n"
        f"Correct answer: {puzzle.answer}\n"
        f"Player answer: {user_answer}\n"
        "Is the player's answer correct?"
    )


def _estimate_tokens(*texts: str) -> float:
    # roughly four characters per token for English text
    return sum(len(t) for t in texts) / 4


class PuzzleService:
    """Serves puzzles to players and checks their answers.

    Attributes:
        llm: LLM client, or None when no provider is configured.
        repository: Storage for generated puzzles and audit records.
    """

    def __init__(
        self,
        llm: AbstractLLMClient | None,
        repository: AbstractGameRepository,
        *,
        use_local_puzzles: bool = False,
        persist_in_background: bool = True,
        retry_config: RetryConfig = DB_RETRY_CONFIG,
        metrics: MetricsCollector = default_metrics,
        rng: random.Random | None = None,
    ) -> None:
        self.llm = llm
        self.repository = repository
        self.use_local_puzzles = use_local_puzzles
        self.persist_in_background = persist_in_background
        self.retry_config = retry_config
        self.metrics = metrics
        self._rng = rng or random.Random()
        self._background: set[asyncio.Task] = set()

    @property
    def ai_enabled(self) -> bool:
        return self.llm is not None and not self.use_local_puzzles

    # ------------------------------------------------------------------ generation

    async def generate_puzzle(self, puzzle_type: str, topic: str | None = None) -> Puzzle:
        """Generate one puzzle with the LLM.

        Raises:
            ValidationAppError: If ``puzzle_type`` is unknown.
            LLMAppError: If no LLM is configured, the call fails, or the model
                returns an unusable puzzle.
        """
        if self.llm is None:
            raise LLMAppError(code="llm_not_configured", message="LLM API key not configured")

        prompt = build_puzzle_prompt(puzzle_type, topic)
        started = time.perf_counter()
        raw = await self.llm.generate_json(
            prompt,
            system=PUZZLE_SYSTEM_PROMPT,
            schema=PUZZLE_JSON_SCHEMA,
            temperature=0.35,
            max_tokens=250,
        )
        duration_ms = (time.perf_counter() - started) * 1000

        question = raw.get("question")
        answer = raw.get("answer")
        if not isinstance(question, str) or not isinstance(answer, str):
            raise LLMAppError(
                code="llm_invalid_puzzle",
                message="AI returned invalid puzzle object",
                details={"model": self.llm.model},
            )

        returned_type = str(raw.get("type", "")).lower()
        if returned_type not in PUZZLE_TYPES:
            raise LLMAppError(
                code="llm_invalid_puzzle",
                message=f"AI returned invalid type: {raw.get('type')}",
                details={"model": self.llm.model, "puzzle_type": returned_type},
            )

        puzzle = Puzzle(
            id=str(uuid.uuid4()),
            type=returned_type,
            question=question.strip(),
            answer=answer.strip(),
        )

        self.metrics.record_metric(
            used_ai=True,
            type="generation",
            tokens_estimate=_estimate_tokens(prompt, question, answer),
            duration_ms=duration_ms,
        )
        await self._audit(
            AuditRecord(
                action="generate",
                puzzle_id=puzzle.id,
                model=self.llm.model,
                prompt=prompt,
                response=raw,
                meta={"duration_ms": round(duration_ms, 2)},
            )
        )
        logger.info(
            "puzzle.generated",
            extra={"puzzle_id": puzzle.id, "puzzle_type": puzzle.type, "duration_ms": duration_ms},
        )
        return puzzle

    async def next_puzzles(self, request: PuzzleRequest) -> list[Puzzle]:
        """Pick ``request.count`` puzzles, never repeating within one response."""
        excluded = list(request.exclude_ids)
        puzzles: list[Puzzle] = []

        for _ in range(request.count):
            puzzle_type = request.type or self._rng.choice(PUZZLE_TYPES)
            puzzle = await self._next_puzzle(puzzle_type, request.topic, excluded)
            puzzles.append(puzzle)
            excluded.append(puzzle.id)

        return puzzles

    async def _next_puzzle(
        self,
        puzzle_type: str,
        topic: str | None,
        excluded: Sequence[str],
    ) -> Puzzle:
        if self.ai_enabled:
            started = time.perf_counter()
            try:
                puzzle = await self.generate_puzzle(puzzle_type, topic)
            except (LLMAppError, ValidationAppError) as exc:
                logger.warning(
                    "puzzle.generation_failed",
                    extra={
                        "error_code": exc.code,
                        "error_msg": exc.message,
                        "duration_ms": (time.perf_counter() - started) * 1000,
                    },
                )
            else:
                self._store(puzzle)
                return puzzle

        started = time.perf_counter()
        puzzle = await self._stored_puzzle(excluded) or self._fallback_puzzle(excluded)
        self.metrics.record_metric(
            used_ai=False,
            type="generation",
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return puzzle

    async def _stored_puzzle(self, excluded: Sequence[str]) -> Puzzle | None:
        try:
            return await with_retry(
                lambda: self.repository.get_random_puzzle(excluded),
                self.retry_config,
            )
        except Exception as exc:
            logger.warning(
                "puzzle.storage_lookup_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return None

    def _fallback_puzzle(self, excluded: Sequence[str]) -> Puzzle:
        candidates = [p for p in FALLBACK_PUZZLES if p.id not in excluded]
        return self._rng.choice(candidates or list(FALLBACK_PUZZLES))

    def _store(self, puzzle: Puzzle) -> None:
        if not self.persist_in_background:
            return
        task = asyncio.get_running_loop().create_task(self.save_puzzle(puzzle))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def save_puzzle(self, puzzle: Puzzle) -> bool:
        """Store a generated puzzle, retrying transient failures.

        Returns:
            True if stored; False for duplicates or when every attempt failed.
        """
        try:
            inserted = await with_retry(
                lambda: self.repository.save_puzzle(puzzle),
                self.retry_config,
            )
        except Exception as exc:
            logger.warning(
                "puzzle.save_failed",
                extra={
                    "puzzle_id": puzzle.id,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return False

        logger.debug("puzzle.saved", extra={"puzzle_id": puzzle.id, "inserted": inserted})
        return inserted

    # ------------------------------------------------------------------ validation

    async def get_puzzle(self, puzzle_id: str) -> Puzzle:
        """Look a puzzle up in storage, then among the built-in ones.

        Raises:
            NotFoundAppError: If the id is unknown.
        """
        stored: Puzzle | None = None
        try:
            stored = await with_retry(
                lambda: self.repository.get_puzzle(puzzle_id),
                self.retry_config,
            )
        except Exception as exc:
            logger.warning(
                "puzzle.storage_lookup_failed",
                extra={"puzzle_id": puzzle_id, "error_type": type(exc).__name__},
            )

        puzzle = stored or find_fallback_puzzle(puzzle_id)
        if puzzle is None:
            raise NotFoundAppError(
                code="puzzle_not_found",
                message="Puzzle not found",
                details={"puzzle_id": puzzle_id},
            )
        return puzzle

    async def validate_answer(self, puzzle_id: str, user_answer: str) -> ValidationResult:
        """Check a player's answer.

        Raises:
            NotFoundAppError: If the puzzle id is unknown.
        """
        puzzle = await self.get_puzzle(puzzle_id)

        started = time.perf_counter()
        if are_answers_equal(user_answer, puzzle.answer):
            self.metrics.record_metric(
                used_ai=False,
                type="validation",
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            return ValidationResult(correct=True, method="local", confidence=1)

        return await self.judge_answer(puzzle, user_answer)

    async def judge_answer(self, puzzle: Puzzle, user_answer: str) -> ValidationResult:
        """Ask the LLM whether a non-matching answer is still acceptable.

        Never raises: an unavailable or failing LLM yields ``correct=False``
        with method ``ai_unavailable``.
        """
        if not self.ai_enabled:
            return ValidationResult(
                correct=False,
                method="ai_unavailable",
                confidence=0,
                explanation="LLM not configured",
            )

        prompt = build_judge_prompt(puzzle, user_answer)
        started = time.perf_counter()
        try:
            raw = await self.llm.generate_json(
                prompt,
                system=JUDGE_SYSTEM_PROMPT,
                schema=JUDGE_JSON_SCHEMA,
                temperature=0,
                max_tokens=120,
            )
        except LLMAppError as exc:
            logger.warning(
                "puzzle.judge_failed",
                extra={"puzzle_id": puzzle.id, "error_code": exc.code},
            )
            return ValidationResult(
                correct=False,
                method="ai_unavailable",
                confidence=0,
                explanation=exc.message,
            )
        duration_ms = (time.perf_counter() - started) * 1000

        result = ValidationResult(
            correct=raw.get("correct") is True,
            method="ai",
            confidence=_clamp_confidence(raw.get("confidence")),
            explanation=raw.get("explanation") if isinstance(raw.get("explanation"), str) else None,
        )

        self.metrics.record_metric(
            used_ai=True,
            type="validation",
            tokens_estimate=_estimate_tokens(prompt, str(raw)),
            duration_ms=duration_ms,
        )
        await self._audit(
            AuditRecord(
                action="validate",
                puzzle_id=puzzle.id,
                model=self.llm.model,
                prompt=prompt,
                response=raw,
                meta={"correct": result.correct, "duration_ms": round(duration_ms, 2)},
            )
        )
        return result

    async def _audit(self, record: AuditRecord) -> None:
        try:
            await self.repository.record_audit(record)
        except Exception as exc:
            logger.warning(
                "audit.insert_failed",
                extra={
                    "action": record.action,
                    "puzzle_id": record.puzzle_id,
                    "error_type": type(exc).__name__,
                },
            )


def _clamp_confidence(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return min(max(float(value), 0.0), 1.0)
