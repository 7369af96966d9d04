"""
Unit tests for payload validation
"""

import pytest

from spendwise.services.validators import (
    ApiKeyCreate,
    ExpenseUpdate,
    RecurringExpenseCreate,
    ValidationError,
    parse_payload,
    provided_fields,
)


class TestParsePayload:
    """Test request body parsing"""

    def test_accepts_camel_and_snake_case(self):
        camel = parse_payload(
            RecurringExpenseCreate,
            {"amount": 10, "description": "Rent", "dueDayOfMonth": 28, "splitBy": 2},
        )
        snake = parse_payload(
            RecurringExpenseCreate,
            {"amount": 10, "description": "Rent", "due_day_of_month": 28, "split_by": 2},
        )

        assert camel == snake
        assert camel.due_day_of_month == 28

    def test_strips_whitespace(self):
        data = parse_payload(RecurringExpenseCreate, {"amount": 1, "description": "  Rent  "})

        assert data.description == "Rent"

    def test_issues_per_field(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(
                RecurringExpenseCreate,
                {"amount": 0, "description": "", "dueDayOfMonth": 0, "splitBy": 11},
            )

        paths = {issue["path"] for issue in exc_info.value.issues}
        assert paths == {"amount", "description", "dueDayOfMonth", "splitBy"}
        assert exc_info.value.message == "Validation failed"

    @pytest.mark.parametrize(
        "payload",
        [
            {"amount": 1, "description": "Rent", "due_day_of_month": 32, "split_by": 0},
            {"amount": 1, "description": "Rent", "dueDayOfMonth": 32, "splitBy": 0},
        ],
    )
    def test_issue_paths_use_camel_case_for_either_spelling(self, payload):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(RecurringExpenseCreate, payload)

        paths = sorted(issue["path"] for issue in exc_info.value.issues)
        assert paths == ["dueDayOfMonth", "splitBy"]

    @pytest.mark.parametrize("payload", [None, "text", 5, [{"scopes": []}]])
    def test_non_object(self, payload):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(ApiKeyCreate, payload)

        assert exc_info.value.issues == [{"path": "root", "message": "Expected an object"}]


class TestProvidedFields:
    """Test partial update field tracking"""

    def test_only_sent_fields(self):
        data = parse_payload(ExpenseUpdate, {"amount": 5, "categoryId": None})

        assert provided_fields(data) == {"amount": 5, "category_id": None}

    def test_empty_update(self):
        assert provided_fields(parse_payload(ExpenseUpdate, {})) == {}
