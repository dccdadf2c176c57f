"""
Response scoring service
Categorize: positional category match
Cloze: case-insensitive, trimmed word match
Comprehension: exact option index match
"""
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "unknown"

# Per-type legacy answer payloads accepted alongside answer / userAnswer
LEGACY_ANSWER_KEYS = {
    "categorize": "categorizeAnswer",
    "cloze": "clozeAnswer",
    "comprehension": "comprehensionAnswer",
}


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves up on the decimal value, like Math.round for integers"""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def percentage(score: int, max_score: int) -> int:
    if max_score <= 0:
        return 0
    return round_half_up(score / max_score * 100)


class ScoringService:
    """
    Grades submitted answers against the answer keys embedded in a form's
    questions.

    Every question scores as (correct sub-items, scorable sub-items). An
    empty answer key still scores out of 1 so percentages never divide by
    zero. Malformed answers score 0 instead of raising.
    """

    def grade_submission(
        self,
        questions: List[Dict[str, Any]],
        submitted: List[Any]
    ) -> Dict[str, Any]:
        """
        Grade a complete submission

        Args:
            questions: The form's ordered question list (stored JSON)
            submitted: One entry per question, aligned by position

        Returns:
            Dictionary with per-question results and the aggregate totals
        """
        results = []

        for index, entry in enumerate(submitted):
            question = questions[index] if index < len(questions) else None
            results.append(self.grade_entry(index, question, entry))

        summary = self.summarize(results)

        logger.info(
            f"Submission graded: {summary['totalScore']}/{summary['maxTotalScore']} "
            f"across {len(results)} answers"
        )

        return summary

    def grade_entry(
        self,
        index: int,
        question: Optional[Dict[str, Any]],
        entry: Any
    ) -> Dict[str, Any]:
        """Grade one submitted entry against the question at the same position"""
        question_type = question.get("type") if isinstance(question, dict) else None
        if question_type not in LEGACY_ANSWER_KEYS:
            question_type = UNKNOWN_TYPE

        answer = self.extract_answer(question, entry)
        score, max_score = self.score(question, answer)

        return {
            "questionIndex": index,
            "questionId": question.get("id") if isinstance(question, dict) else None,
            "questionType": question_type,
            "userAnswers": _json_safe(entry),
            "score": score,
            "maxScore": max_score,
            "percentage": percentage(score, max_score),
        }

    def score(self, question: Optional[Dict[str, Any]], answer: Any) -> Tuple[int, int]:
        """
        Score an already-extracted answer

        Returns:
            Tuple of (score, max_score)
        """
        if not isinstance(question, dict):
            return 0, 1

        q_type = question.get("type")

        if q_type == "categorize":
            return self._score_categorize(question.get("categorizeData") or {}, answer)
        elif q_type == "cloze":
            return self._score_cloze(question.get("clozeData") or {}, answer)
        elif q_type == "comprehension":
            return self._score_comprehension(question.get("comprehensionData") or {}, answer)

        logger.warning(f"Cannot score question of unknown type: {q_type!r}")
        return 0, 1

    def summarize(self, results: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Re-derive percentages and totals from per-question score/maxScore

        Idempotent: running it on its own output gives the same output.
        """
        refreshed = []
        total_score = 0
        max_total_score = 0

        for result in results:
            score = _as_int(result.get("score"))
            max_score = _as_int(result.get("maxScore"))
            total_score += score
            max_total_score += max_score
            refreshed.append({**result, "score": score, "maxScore": max_score,
                              "percentage": percentage(score, max_score)})

        return {
            "responses": refreshed,
            "totalScore": total_score,
            "maxTotalScore": max_total_score,
            "overallPercentage": percentage(total_score, max_total_score),
        }

    def extract_answer(self, question: Optional[Dict[str, Any]], entry: Any) -> Any:
        """
        Pull the answer list out of a submitted entry

        Accepts a bare list, {answer: [...]}, {userAnswer: [...]} or the
        per-type legacy payloads (categorizeAnswer, clozeAnswer,
        comprehensionAnswer).
        """
        if isinstance(entry, list):
            return entry
        if not isinstance(entry, dict):
            return None

        for key in ("answer", "userAnswer"):
            if entry.get(key) is not None:
                return entry[key]

        if not isinstance(question, dict):
            return None

        q_type = question.get("type")
        legacy = entry.get(LEGACY_ANSWER_KEYS.get(q_type, ""))
        if not isinstance(legacy, list):
            return None

        if q_type == "categorize":
            return self._normalize_legacy_categorize(question.get("categorizeData") or {}, legacy)
        elif q_type == "cloze":
            blanks = (question.get("clozeData") or {}).get("blanks") or []
            return _place_by_index(legacy, len(blanks), "blankIndex", "answer")
        elif q_type == "comprehension":
            mcqs = (question.get("comprehensionData") or {}).get("questions") or []
            return _place_by_index(legacy, len(mcqs), "questionIndex", "selectedOption")
        return None

    def _score_categorize(self, data: Dict[str, Any], answer: Any) -> Tuple[int, int]:
        items = data.get("items") or []
        max_score = len(items) or 1

        if not isinstance(answer, list):
            return 0, max_score

        score = 0
        for submitted, item in zip(answer, items):
            if not isinstance(submitted, dict) or not isinstance(item, dict):
                continue
            category = submitted.get("category")
            if category is not None and category == item.get("correctCategory"):
                score += 1

        return score, max_score

    def _score_cloze(self, data: Dict[str, Any], answer: Any) -> Tuple[int, int]:
        blanks = data.get("blanks") or []
        max_score = len(blanks) or 1

        if not isinstance(answer, list):
            return 0, max_score

        score = 0
        for submitted, blank in zip(answer, blanks):
            expected = blank.get("word") if isinstance(blank, dict) else None
            if not isinstance(submitted, str) or not isinstance(expected, str):
                continue
            if submitted.strip().casefold() == expected.strip().casefold():
                score += 1

        return score, max_score

    def _score_comprehension(self, data: Dict[str, Any], answer: Any) -> Tuple[int, int]:
        mcqs = data.get("questions") or []
        max_score = len(mcqs) or 1

        if not isinstance(answer, list):
            return 0, max_score

        score = 0
        for submitted, mcq in zip(answer, mcqs):
            correct = mcq.get("correctAnswer") if isinstance(mcq, dict) else None
            if _is_number(submitted) and _is_number(correct) and submitted == correct:
                score += 1

        return score, max_score

    def _normalize_legacy_categorize(
        self,
        data: Dict[str, Any],
        legacy: List[Any]
    ) -> List[Dict[str, Any]]:
        """Align [{item, selectedCategory}] to the key's items by item text"""
        items = data.get("items") or []
        by_text = {}
        for entry in legacy:
            if isinstance(entry, dict) and isinstance(entry.get("item"), str):
                by_text.setdefault(entry["item"], entry.get("selectedCategory"))

        aligned = []
        for index, item in enumerate(items):
            text = item.get("text") if isinstance(item, dict) else None
            if text in by_text:
                aligned.append({"category": by_text[text]})
            elif index < len(legacy) and isinstance(legacy[index], dict):
                aligned.append({"category": legacy[index].get("selectedCategory")})
            else:
                aligned.append({"category": None})
        return aligned


def _place_by_index(entries: List[Any], size: int, index_key: str, value_key: str) -> List[Any]:
    placed: List[Any] = [None] * size
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        index = entry.get(index_key)
        if _is_number(index) and int(index) == index and 0 <= index < size:
            placed[int(index)] = entry.get(value_key)
    return placed


def _json_safe(value: Any) -> Any:
    """Copy of a submitted value with NaN and infinities replaced by None"""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, list):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    return value


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def _as_int(value: Any) -> int:
    if not _is_number(value):
        return 0
    return int(value)


# Global instance
scoring_service = ScoringService()
