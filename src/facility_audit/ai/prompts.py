"""Prompt text for the QAPI summary and photo analysis."""

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert Infection Preventionist and QAPI consultant for Long Term Care."
)

SUMMARY_PROMPT_TEMPLATE = """\
Review the following failed items from a "Process Round" audit conducted at \
{facility_name} - {location}.

Failures:
{failure_details}

Please provide a concise QAPI summary (approx 150 words) that:
1. Identifies the primary root cause themes (e.g., lack of supplies, behavioral drift, training gap).
2. Cites the relevance to CMS Tag F880 (Infection Control).
3. Suggests 3 specific actionable interventions for the QAPI plan.

Format as valid Markdown.
"""

FAILURE_LINE_TEMPLATE = "- Category: {category}, Issue: {text}, Notes: {notes}"

IMAGE_PROMPT = (
    "Analyze this image in the context of a Long Term Care facility infection control "
    "audit (F880). Describe any potential infection risks or breaches in protocol "
    "visible. Keep it brief (under 50 words)."
)
