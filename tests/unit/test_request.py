"""Test analysis request assembly."""

import pytest
from pydantic import ValidationError

from mood_insight.ai.errors import InsufficientDataError, RequestValidationError
from mood_insight.ai.models import AnalysisRequest
from mood_insight.ai.request import assemble_request
from mood_insight.lifelog.summary import summarize_period


def test_assemble_request_builds_summary(mood_records, activities):
    request = assemble_request("2024-01-01", "2024-01-07", mood_records, activities)

    assert request.start_date == "2024-01-01"
    assert request.end_date == "2024-01-07"
    assert request.total_items == 5
    assert request.period_summary.day_count == 7
    assert request.period_summary.average_mood == 3.0
    assert request.period_summary.top_category == "運動"


def test_empty_data_is_insufficient():
    with pytest.raises(InsufficientDataError) as exc_info:
        assemble_request("2024-01-01", "2024-01-07", [], [])

    assert exc_info.value.message == "分析するデータが不足しています"


def test_mood_only_request_is_accepted(mood_records):
    request = assemble_request("2024-01-01", "2024-01-07", mood_records, [])

    assert request.activities == ()
    assert len(request.mood_records) == 2


@pytest.mark.parametrize("bad_date", ["2024/01/01", "2024-13-01", "yesterday", ""])
def test_malformed_dates_are_rejected(mood_records, bad_date):
    with pytest.raises(RequestValidationError):
        assemble_request(bad_date, "2024-01-07", mood_records, [])


def test_end_before_start_is_rejected(mood_records):
    with pytest.raises(RequestValidationError):
        assemble_request("2024-01-07", "2024-01-01", mood_records, [])


def test_request_model_enforces_invariants(mood_records):
    summary = summarize_period("2024-01-01", "2024-01-07", mood_records, [])

    with pytest.raises(ValidationError):
        AnalysisRequest(
            start_date="2024-01-07",
            end_date="2024-01-01",
            mood_records=tuple(mood_records),
            period_summary=summary,
        )

    with pytest.raises(ValidationError):
        AnalysisRequest(
            start_date="2024-01-01", end_date="2024-01-07", period_summary=summary
        )
