"""Structured prompt builders for QC feedback and data-quality evaluation."""

import json
from typing import Any, Dict, Mapping, Optional, Sequence

from llm_feedback.request_builder import FeedbackRequest
from llm_feedback.schema import DataEvaluationOutput, FeedbackOutput

_FEEDBACK_SCHEMA_JSON = json.dumps(FeedbackOutput.model_json_schema(), indent=2)
_EVALUATION_SCHEMA_JSON = json.dumps(DataEvaluationOutput.model_json_schema(), indent=2)

_FEEDBACK_EXAMPLE = json.dumps(
    {
        "summary": "Two fatal address errors caused rejection; formatting issues are minor.",
        "overall_score": 16.67,
        "is_rejected": True,
        "category_analysis": [
            {
                "subcategory_name": "Wrong Address",
                "error_count": 2,
                "is_fatal_error": True,
                "impact": "Records cannot be delivered or verified.",
                "recommendations": ["Cross-check addresses against the source document"],
            }
        ],
        "priority_issues": [
            {
                "subcategory": "Wrong Address",
                "severity": "high",
                "affected_records": 2,
                "action_required": "Correct both records before resubmission",
            }
        ],
        "improvement_suggestions": ["Add a second-pass review for address fields"],
        "next_steps": ["Fix fatal errors", "Resubmit for QC"],
    },
    indent=2,
)

_SYSTEM_INSTRUCTIONS = """\
You are a QC evaluation expert reviewing reviewer-marked errors.

STRICT RULES:
- Do NOT recompute the score; use the overall score provided.
- Use ONLY the data provided below.
- Return strictly valid JSON matching the schema defined below.
- Do NOT include any text outside the JSON object.
- Do NOT wrap the JSON in markdown code fences.
"""

_EVALUATION_INSTRUCTIONS = """\
You are a QC expert performing data quality analysis on a batch of records.

ANALYSIS FOCUS:
1. Completeness (missing values in important columns)
2. Accuracy (formats such as emails and phone numbers)
3. Consistency (standardization, casing)
4. Duplicate and near-duplicate records
5. Outliers that may indicate errors

RULES:
- Analyze every record in the batch.
- Give exact counts of problematic records in "affected_records".
- Return strictly valid JSON matching the schema defined below.
- Do NOT include any text outside the JSON object.
"""

_SECTION_TEMPLATE = """\
## {title}
```json
{data}
```
"""


def _format_sections(**data: Any) -> str:
    parts = []
    for key, value in data.items():
        title = key.replace("_", " ").title()
        body = json.dumps(value, indent=2, default=str)
        parts.append(_SECTION_TEMPLATE.format(title=title, data=body))
    return "\n".join(parts)


class FeedbackPromptBuilder:
    """Builds the feedback prompt for one scored evaluation.

    The prompt carries the score, rejection state, errors grouped by
    subcategory with sample issues, and the fatal error names.
    """

    def build_prompt(self, request: FeedbackRequest) -> str:
        payload = request.to_dict()
        sections = _format_sections(
            evaluation={
                "overall_score": payload["overall_score"],
                "total_records": payload["total_records"],
                "is_rejected": payload["is_rejected"],
            },
            errors_by_subcategory=payload["errors_by_subcategory"],
            fatal_errors=payload["fatal_errors"],
        )

        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{sections}\n"
            f"# OUTPUT SCHEMA\n\n"
            f"Your response MUST conform to this JSON schema:\n\n"
            f"```json\n{_FEEDBACK_SCHEMA_JSON}\n```\n\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_FEEDBACK_EXAMPLE}\n```\n\n"
            f"# TASK\n\n"
            f"Explain which subcategories had the most errors and give "
            f"actionable recommendations as a single JSON object."
        )


class DataEvaluationPromptBuilder:
    """Builds the data-quality prompt for one batch of records."""

    def build_prompt(
        self,
        records: Sequence[Mapping[str, Any]],
        important_columns: Sequence[str],
        first_row_number: int = 1,
        row_numbers: Optional[Sequence[int]] = None,
    ) -> str:
        """Format one batch.

        Args:
            records: Records of this batch.
            important_columns: Columns the analysis should focus on.
            first_row_number: Row number of the first record, so locations
                in the answer refer to rows of the full upload.
            row_numbers: Sheet row of each record, when rows are not
                consecutive.
        """
        batch: Dict[str, Any] = {
            "first_row_number": first_row_number,
            "total_records": len(records),
            "records": [dict(record) for record in records],
        }
        if row_numbers is not None:
            batch["row_numbers"] = list(row_numbers)
        sections = _format_sections(
            important_columns=list(important_columns),
            dataset=batch,
        )

        return (
            f"{_EVALUATION_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{sections}\n"
            f"# OUTPUT SCHEMA\n\n"
            f"Your response MUST conform to this JSON schema:\n\n"
            f"```json\n{_EVALUATION_SCHEMA_JSON}\n```\n\n"
            f"# TASK\n\n"
            f"Evaluate all {len(records)} records and answer with a single JSON object."
        )
