"""
Extraction Prompt Templates
===========================

Fixed prompts for turning free text (PDF, DOCX, OCR output, unmapped
spreadsheets) into a JSON array of employee objects.

The system prompt enumerates every employee field, its type and the closed
sets for ``department`` and ``status``. Closed sets are rendered from
``schemas.domain`` so prompt and validator cannot drift.
"""

import json

from employee_import.schemas.domain import DEFAULT_STATUS, DEPARTMENTS, EMPLOYEE_STATUSES

# =============================================================================
# SYSTEM PROMPT
# =============================================================================

SYSTEM_PROMPT = f"""You are an expert at extracting employee information from documents. Extract employee data from the provided text and return it as a JSON array of employee objects.

Each employee object should have these fields (all optional except first_name):
- emp_code: string (employee code/ID)
- first_name: string (required)
- last_name: string
- email: string
- phone: string (normalize to E.164 format with +91 for Indian numbers)
- department: one of {json.dumps(list(DEPARTMENTS), separators=(",", ":"))}
- designation: string (job title/role)
- location: string
- doj: string (date of joining in YYYY-MM-DD format)
- status: one of {json.dumps(list(EMPLOYEE_STATUSES), separators=(",", ":"))} (default "{DEFAULT_STATUS}")
- monthly_ctc: number

Rules:
1. If only "Full Name" is available, split into first_name (first word) and last_name (last word)
2. Validate email format
3. Normalize phone numbers to E.164 (+91 for 10-digit Indian numbers)
4. Parse dates to YYYY-MM-DD format
5. Only include employees with at least a first_name

Return only the JSON array, no other text."""

# =============================================================================
# USER PROMPT
# =============================================================================

USER_PROMPT_TEMPLATE = "Extract employee information from this text:\n\n{text}"


def build_messages(text: str) -> list[dict[str, str]]:
    """Build the chat-completions message list for one document."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_TEMPLATE.format(text=text)},
    ]
