from __future__ import annotations

REVIEW_SYSTEM_PROMPT = "You are a structured reviewer for job applications."

REVIEW_INTRO = "You are an assistant helping business recruiters evaluate candidates."

REVIEW_JOB_SECTION = """
Job Title: {job_title}

Job Description:
{job_description}
""".strip()

REVIEW_INSTRUCTIONS = """
Provide:
- A star rating from 1-5 assessing suitability for the role.
- A concise 2-3 sentence summary describing strengths/concerns.

Respond strictly as JSON with keys "rating" (number 1-5) and "summary" (string).
""".strip()

NO_DOCUMENT_TEXT = "Candidate Documents: No extracted resume text available."

HINT_LABELS = {
    "age": "Preferred age guidance",
    "ethnicity": "Ethnicity considerations",
    "gender": "Gender balance notes",
}
