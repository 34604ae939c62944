"""Markdown rendering of a completed analysis job."""

from __future__ import annotations

from .errors import ErrorCategory, Failure
from .models.analysis import AnalysisJob

REPORT_TEMPLATE = """\
## Mobile Bug Analysis

{response}

---
**Analysis Details:**
- Frames analyzed: {frames}
- Tokens used: {tokens}
- Cost: ${cost:.4f}"""


def format_report(job: AnalysisJob) -> str | Failure:
    """Render *job* as Markdown.

    A completed job without ``result.response`` breaks the server contract
    and is reported as ``RESULT_MISSING`` rather than an empty report.
    """
    if job.result is None or not job.result.response:
        return Failure(
            category=ErrorCategory.RESULT_MISSING,
            message="No analysis result found",
            job_id=job.id,
        )
    return REPORT_TEMPLATE.format(
        response=job.result.response.strip(),
        frames=job.frames_extracted or "N/A",
        tokens=job.tokens_used or 0,
        cost=job.cost_total or 0.0,
    )
