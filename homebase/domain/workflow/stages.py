"""
Workflow stage vocabulary.

An engagement moves through WORKFLOW_STAGES in order; the maps below translate
job, quote and orchestrator events into stages.
"""

from typing import Optional

WORKFLOW_STAGES = [
    "request_submitted",
    "ai_analyzing",
    "providers_matched",
    "quote_sent",
    "diagnostic_scheduled",
    "diagnostic_completed",
    "quote_approved",
    "job_scheduled",
    "job_in_progress",
    "job_completed",
    "invoice_sent",
    "payment_received",
    "review_requested",
    "workflow_complete",
]

STAGE_LABELS = {
    "request_submitted": "Request Submitted",
    "ai_analyzing": "AI Analyzing",
    "providers_matched": "Providers Matched",
    "quote_sent": "Quote Sent",
    "diagnostic_scheduled": "Diagnostic Scheduled",
    "diagnostic_completed": "Diagnostic Completed",
    "quote_approved": "Quote Approved",
    "job_scheduled": "Job Scheduled",
    "job_in_progress": "Job In Progress",
    "job_completed": "Job Completed",
    "invoice_sent": "Invoice Sent",
    "payment_received": "Payment Received",
    "review_requested": "Review Requested",
    "workflow_complete": "Complete",
    "batch_update": "Multiple Updates",
}

JOB_STATUS_TO_STAGE = {
    "scheduled": "job_scheduled",
    "in_progress": "job_in_progress",
    "completed": "job_completed",
    "confirmed": "diagnostic_scheduled",
}

# A rejected quote sends the engagement back to matching
QUOTE_ACTION_TO_STAGE = {
    "sent": "quote_sent",
    "accepted": "quote_approved",
    "rejected": "providers_matched",
}

ORCHESTRATOR_PROGRESSION = {
    "quote_created": "quote_sent",
    "quote_accepted": "job_scheduled",
    "booking_scheduled": "job_scheduled",
    "job_started": "job_in_progress",
    "job_completed": "job_completed",
    "invoice_generated": "invoice_sent",
    "invoice_sent": "invoice_sent",
    "payment_received": "payment_received",
}

BOARD_COLUMNS = [
    {"id": "leads", "title": "New Leads", "stages": ["request_submitted", "ai_analyzing", "providers_matched"]},
    {"id": "quoted", "title": "Quoted", "stages": ["quote_sent"]},
    {"id": "scheduled", "title": "Scheduled", "stages": ["diagnostic_scheduled", "job_scheduled"]},
    {"id": "active", "title": "In Progress", "stages": ["diagnostic_completed", "quote_approved", "job_in_progress"]},
    {"id": "invoiced", "title": "Invoiced", "stages": ["job_completed", "invoice_sent"]},
    {"id": "complete", "title": "Complete", "stages": ["payment_received", "review_requested", "workflow_complete"]},
]


def is_valid_stage(stage: str) -> bool:
    return stage in WORKFLOW_STAGES


def format_stage_label(stage: str) -> str:
    return STAGE_LABELS.get(stage, stage)


def next_stage(stage: str) -> Optional[str]:
    """Stage that follows `stage`, or None at the end or for unknown stages"""
    if stage not in WORKFLOW_STAGES:
        return None
    index = WORKFLOW_STAGES.index(stage)
    if index >= len(WORKFLOW_STAGES) - 1:
        return None
    return WORKFLOW_STAGES[index + 1]


def stage_progress(stage: Optional[str]) -> dict:
    """1-based position of the stage and percentage through the workflow"""
    total = len(WORKFLOW_STAGES)
    if stage not in WORKFLOW_STAGES:
        return {"current": 0, "total": total, "percentage": 0}
    current = WORKFLOW_STAGES.index(stage) + 1
    return {"current": current, "total": total, "percentage": round(current / total * 100)}


def board_column_for(stage: str) -> Optional[str]:
    for column in BOARD_COLUMNS:
        if stage in column["stages"]:
            return column["id"]
    return None
