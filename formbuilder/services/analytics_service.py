"""
Analytics service for per-form response statistics
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from formbuilder.database import as_utc
from formbuilder.models import Form, FormResponse
from formbuilder.schemas.analytics import AnalyticsReport
from formbuilder.services.scoring_service import round_half_up

logger = logging.getLogger(__name__)

TREND_DAYS = 7

# (label, inclusive upper bound of the band)
SCORE_BANDS = [
    ("0-25%", 25),
    ("26-50%", 50),
    ("51-75%", 75),
    ("76-100%", None),
]


class AnalyticsService:
    """Reduces the graded responses of a form into a report"""

    def get_form_analytics(self, db: Session, form: Form, now: Optional[datetime] = None) -> AnalyticsReport:
        """
        Load every response of a form and aggregate them

        Args:
            db: Database session
            form: Form being reported on

        Returns:
            AnalyticsReport for the form
        """
        responses = (
            db.query(FormResponse)
            .filter(FormResponse.form_id == form.id)
            .all()
        )

        logger.info(f"Aggregating {len(responses)} responses for form {form.id}")

        return self.aggregate(form.questions or [], responses, now=now)

    def aggregate(
        self,
        questions: List[Dict[str, Any]],
        responses: Sequence[Any],
        now: Optional[datetime] = None
    ) -> AnalyticsReport:
        """
        Aggregate responses of one form

        Pure function of its inputs. ``responses`` items need total_score,
        max_total_score, responses (per-question results) and submitted_at.
        """
        if not responses:
            return AnalyticsReport()

        total_score = sum(r.total_score or 0 for r in responses)
        max_total_score = sum(r.max_total_score or 0 for r in responses)

        average_score = total_score / len(responses)
        average_percentage = (total_score / max_total_score * 100) if max_total_score > 0 else 0

        return AnalyticsReport(
            total_responses=len(responses),
            average_score=round_half_up(average_score, 2),
            average_percentage=round_half_up(average_percentage, 2),
            completion_rate=self._completion_rate(questions, responses),
            question_analytics=self._question_analytics(questions, responses),
            response_distribution=self._score_distribution(responses),
            submission_trend=self._submission_trend(responses, now),
            last_submission=self._last_submission(responses),
        )

    def _question_analytics(
        self,
        questions: List[Dict[str, Any]],
        responses: Sequence[Any]
    ) -> List[Dict[str, Any]]:
        """Accuracy per question, aligning results by position"""
        analytics = []

        for index, question in enumerate(questions):
            results = [
                r.responses[index] for r in responses
                if r.responses and len(r.responses) > index
            ]
            total_answers = len(results)
            correct_answers = sum(
                1 for result in results
                if isinstance(result, dict) and result.get("score") == result.get("maxScore")
            )
            accuracy = (correct_answers / total_answers * 100) if total_answers > 0 else 0

            analytics.append({
                "question_id": question.get("id"),
                "question_text": _question_text(question),
                "question_type": question.get("type", "unknown"),
                "total_answers": total_answers,
                "correct_answers": correct_answers,
                "accuracy": round_half_up(accuracy, 2),
            })

        return analytics

    def _score_distribution(self, responses: Sequence[Any]) -> List[Dict[str, Any]]:
        """Bucket responses into percentage bands"""
        counts = [0] * len(SCORE_BANDS)

        for response in responses:
            max_total = response.max_total_score or 0
            pct = (response.total_score or 0) / max_total * 100 if max_total > 0 else 0

            for band, (_, upper) in enumerate(SCORE_BANDS):
                if upper is None or pct <= upper:
                    counts[band] += 1
                    break

        return [
            {"range": label, "count": count}
            for (label, _), count in zip(SCORE_BANDS, counts)
        ]

    def _submission_trend(self, responses: Sequence[Any], now: Optional[datetime]) -> List[Dict[str, Any]]:
        """Submissions per local calendar day over the trailing week, oldest first"""
        today = (now or datetime.now(timezone.utc)).astimezone().date()
        days = [today - timedelta(days=offset) for offset in range(TREND_DAYS - 1, -1, -1)]

        per_day: Dict[Any, int] = {}
        for response in responses:
            submitted = as_utc(response.submitted_at)
            if submitted is None:
                continue
            day = submitted.astimezone().date()
            per_day[day] = per_day.get(day, 0) + 1

        return [{"date": day.isoformat(), "count": per_day.get(day, 0)} for day in days]

    def _completion_rate(self, questions: List[Dict[str, Any]], responses: Sequence[Any]) -> float:
        """Share of responses carrying a result for every current question"""
        complete = sum(1 for r in responses if len(r.responses or []) >= len(questions))
        return round_half_up(complete / len(responses) * 100, 2)

    def _last_submission(self, responses: Sequence[Any]) -> Optional[datetime]:
        timestamps = [as_utc(r.submitted_at) for r in responses if r.submitted_at is not None]
        return max(timestamps) if timestamps else None


def _question_text(question: Dict[str, Any]) -> str:
    q_type = question.get("type")
    if q_type == "categorize":
        return (question.get("categorizeData") or {}).get("question") or ""
    if q_type == "cloze":
        return (question.get("clozeData") or {}).get("question") or ""
    if q_type == "comprehension":
        return (question.get("comprehensionData") or {}).get("passage") or ""
    return ""


# Global instance
analytics_service = AnalyticsService()
