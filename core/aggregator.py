"""
core/aggregator.py -- Merge per-auditor submissions into one per-item report.

No side effects and no access checks: the caller decides which submissions the
requester may see (public listing vs. owner listing) and hands them in already
fetched. Aggregation itself is identical for both.
"""

from collections.abc import Iterable

from core.models import AuditEntry, AuditStatus, AuditSubmission, ItemVerdicts


def aggregate(submissions: Iterable[AuditSubmission]) -> dict[str, ItemVerdicts]:
    """Bucket every auditor's item verdicts into pass / fail lists keyed by item id.

    Entries keep the order of `submissions`; nothing is re-sorted. An item whose
    status is None still gets a bucket (it was reviewed) but adds to neither
    list.
    """
    report: dict[str, ItemVerdicts] = {}
    for submission in submissions:
        for item_id, item in submission.data.items():
            bucket = report.setdefault(item_id, ItemVerdicts())
            entry = AuditEntry(
                username=submission.auditor_username,
                description=item.description,
                updated=item.updated,
            )
            if item.status == AuditStatus.PASS:
                bucket.passed.append(entry)
            elif item.status == AuditStatus.FAIL:
                bucket.failed.append(entry)
    return report


def report_to_dict(report: dict[str, ItemVerdicts]) -> dict[str, dict[str, list[dict]]]:
    """Render a report in its wire shape: {item_id: {"pass": [...], "fail": [...]}}."""
    return {
        item_id: {
            "pass": [_entry_to_dict(e) for e in verdicts.passed],
            "fail": [_entry_to_dict(e) for e in verdicts.failed],
        }
        for item_id, verdicts in report.items()
    }


def _entry_to_dict(entry: AuditEntry) -> dict:
    return {"username": entry.username, "description": entry.description, "updated": entry.updated}
