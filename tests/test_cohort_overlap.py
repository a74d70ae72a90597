"""
Tests for cohort date ordering and the overlap validator.
"""

from datetime import datetime

import pytest
from bson import ObjectId

from accelerator.errors import OverlapError, ValidationError
from accelerator.schemas.cohort import CohortCreate
from accelerator.services.cohorts import (
    check_schedule,
    date_errors,
    find_overlapping,
    overlaps,
    validate_cohort_dates,
    windows_overlap,
)


def d(month, day, year=2025):
    return datetime(year, month, day)


def cohort(app_start, app_end, prog_start, prog_end, **extra):
    return {
        "_id": extra.pop("_id", ObjectId()),
        "name": extra.pop("name", "Cohort"),
        "application_start_date": app_start,
        "application_end_date": app_end,
        "program_start_date": prog_start,
        "program_end_date": prog_end,
        **extra,
    }


COHORT_A = cohort(d(1, 1), d(1, 31), d(2, 1), d(4, 1), name="A")


class TestWindows:
    def test_disjoint(self):
        assert not windows_overlap(d(1, 1), d(1, 10), d(1, 11), d(1, 20))

    def test_touching_endpoints_overlap(self):
        assert windows_overlap(d(1, 1), d(1, 10), d(1, 10), d(1, 20))

    def test_contained(self):
        assert windows_overlap(d(1, 1), d(3, 1), d(1, 10), d(1, 20))


class TestOverlaps:
    def test_application_windows_intersect(self):
        candidate = cohort(d(1, 15), d(2, 15), d(6, 1), d(8, 1))
        assert overlaps(candidate, COHORT_A)

    def test_program_windows_intersect(self):
        candidate = cohort(d(2, 2), d(2, 20), d(3, 1), d(5, 1))
        assert overlaps(candidate, COHORT_A)

    def test_no_overlap(self):
        candidate = cohort(d(4, 2), d(4, 30), d(5, 1), d(7, 1))
        assert not overlaps(candidate, COHORT_A)

    def test_accepts_pydantic_models(self):
        candidate = CohortCreate(
            name="B",
            application_start_date=d(1, 15),
            application_end_date=d(2, 15),
            program_start_date=d(6, 1),
            program_end_date=d(8, 1),
        )
        assert overlaps(candidate, COHORT_A)

    def test_update_excludes_itself(self):
        moved = dict(COHORT_A, application_end_date=d(1, 30))
        assert find_overlapping(moved, [COHORT_A], exclude_id=str(COHORT_A["_id"])) == []
        assert find_overlapping(moved, [COHORT_A]) == [COHORT_A]


class TestDateOrdering:
    def test_valid(self):
        assert date_errors(COHORT_A) == []

    def test_application_end_after_program_start(self):
        errors = date_errors(cohort(d(1, 1), d(2, 5), d(2, 1), d(4, 1)))
        assert [e["field"] for e in errors] == ["application_end_date"]

    def test_application_end_equal_to_program_start_is_allowed(self):
        assert date_errors(cohort(d(1, 1), d(2, 1), d(2, 1), d(4, 1))) == []

    def test_start_must_be_strictly_before_end(self):
        errors = date_errors(cohort(d(1, 1), d(1, 1), d(4, 1), d(4, 1)))
        assert {e["field"] for e in errors} == {"application_start_date", "program_start_date"}

    def test_missing_dates(self):
        errors = date_errors(cohort(None, d(1, 1), d(2, 1), d(3, 1)))
        assert errors == [{"field": "application_start_date", "message": "application_start_date is required"}]

    def test_validate_raises_with_details(self):
        with pytest.raises(ValidationError) as exc:
            validate_cohort_dates(cohort(d(3, 1), d(1, 1), d(2, 1), d(4, 1)))
        assert exc.value.errors


class TestCheckSchedule:
    def test_dates_checked_before_overlap(self):
        bad = cohort(d(1, 20), d(1, 10), d(2, 1), d(4, 1))
        with pytest.raises(ValidationError):
            check_schedule(bad, [COHORT_A])

    def test_overlap_error_lists_conflicts(self):
        candidate = cohort(d(1, 15), d(2, 15), d(6, 1), d(8, 1))
        with pytest.raises(OverlapError) as exc:
            check_schedule(candidate, [COHORT_A])
        assert exc.value.conflicts == [{"id": str(COHORT_A["_id"]), "name": "A"}]
        assert exc.value.status_code == 409
