"""
Map one uploaded report into fact rows.

A mapping pass replaces everything previously mapped for the upload:
existing facts and issues are deleted, the report is resolved against the
bulk snapshot closest to its export date, and the new facts and issues are
written. The whole pass runs in one transaction.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from ..config import MappingSettings
from ..lookup.postgres_client import DatabaseClient
from ..resolve.issues import IssueCollector
from ..resolve.snapshot_picker import pick_snapshot
from ..schema import (
    ENTITY_LEVEL_SNAPSHOT,
    ISSUE_MISSING_BULK_SNAPSHOT,
)
from ..temporal import to_date
from .mappers import MappingContext, get_mapper

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_MISSING_SNAPSHOT = "missing_snapshot"


@dataclass
class MapUploadResult:
    """Outcome of one mapping pass."""
    upload_id: str
    report_type: str
    status: str
    fact_rows: int
    issue_rows: int
    snapshot_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "upload_id": self.upload_id,
            "report_type": self.report_type,
            "status": self.status,
            "fact_rows": self.fact_rows,
            "issue_rows": self.issue_rows,
            "snapshot_date": self.snapshot_date.isoformat() if self.snapshot_date else None,
        }


def map_upload(
    upload_id: str,
    report_type: str,
    db: DatabaseClient,
    settings: Optional[MappingSettings] = None,
    debug: bool = False
) -> MapUploadResult:
    """
    Map an uploaded report into facts and issues.

    Flow:
    1. Validate the upload (report type and export date)
    2. Clear facts and issues from any previous pass
    3. Pick the bulk snapshot for the export date
       (no snapshot: record a missing_bulk_snapshot issue and stop)
    4. Load the lookup index for the account and snapshot
    5. Map raw rows, insert facts and issues

    Args:
        upload_id: Upload to map
        report_type: Expected report type (sp_campaign, sp_placement,
                     sp_targeting, sp_stis)
        db: Database client instance
        settings: Mapping settings (defaults apply when omitted)
        debug: Log each step of the pass

    Returns:
        MapUploadResult

    Raises:
        ValueError: If the report type is unknown, the upload is of another
                    type, or the upload has no export date
        Exception: If database operations fail (transaction will be rolled back)
    """
    settings = settings or MappingSettings()
    mapper = get_mapper(report_type)

    upload = db.get_upload(upload_id)
    if upload["source_type"] != report_type:
        raise ValueError(
            f"Upload {upload_id} is {upload['source_type']}, expected {report_type}"
        )

    exported_at = upload.get("exported_at")
    exported_at_date = to_date(exported_at) if exported_at else None
    if exported_at_date is None:
        raise ValueError(f"Upload {upload_id} has no exported_at")

    account_id = upload["account_id"]

    db.begin_transaction()

    try:
        # ====================================================================
        # STEP 1: Clear Previous Pass
        # ====================================================================
        db.clear_existing(upload_id, report_type)

        # ====================================================================
        # STEP 2: Pick Bulk Snapshot
        # ====================================================================
        snapshot_date = pick_snapshot(
            exported_at_date,
            db.list_bulk_snapshot_dates(account_id),
            forward_window_days=settings.snapshot_forward_window_days
        )

        if snapshot_date is None:
            collector = IssueCollector()
            collector.add_issue(
                ENTITY_LEVEL_SNAPSHOT,
                ISSUE_MISSING_BULK_SNAPSHOT,
                {"exported_at_date": exported_at_date.isoformat()}
            )
            issue_rows = db.insert_issues(
                account_id,
                upload_id,
                report_type,
                [issue.to_dict() for issue in collector.list()]
            )
            result = MapUploadResult(
                upload_id=upload_id,
                report_type=report_type,
                status=STATUS_MISSING_SNAPSHOT,
                fact_rows=0,
                issue_rows=issue_rows
            )

        else:
            snapshot_date = to_date(snapshot_date)
            if debug:
                logger.info(f"Upload {upload_id} exported {exported_at_date} -> bulk snapshot {snapshot_date}")

            # ================================================================
            # STEP 3: Load Lookup Index
            # ================================================================
            lookup = db.load_lookup_index(account_id, snapshot_date, debug=debug)

            # ================================================================
            # STEP 4: Map Rows
            # ================================================================
            rows = db.fetch_raw_rows(report_type, upload_id)
            context = MappingContext(
                upload_id=upload_id,
                account_id=account_id,
                exported_at=exported_at,
                reference_date=exported_at_date
            )
            mapped = mapper(rows, lookup, context)

            if debug:
                logger.info(
                    f"Mapped {len(mapped.facts)}/{len(rows)} rows, "
                    f"{len(mapped.issues)} issues "
                    f"({sum(i.row_count for i in mapped.issues)} rows affected)"
                )

            # ================================================================
            # STEP 5: Persist
            # ================================================================
            fact_rows = db.insert_facts(report_type, mapped.facts)
            issue_rows = db.insert_issues(
                account_id,
                upload_id,
                report_type,
                [issue.to_dict() for issue in mapped.issues]
            )
            result = MapUploadResult(
                upload_id=upload_id,
                report_type=report_type,
                status=STATUS_OK,
                fact_rows=fact_rows,
                issue_rows=issue_rows,
                snapshot_date=snapshot_date
            )

    except Exception as e:
        db.rollback_transaction()
        logger.error(f"Mapping failed for upload {upload_id}: {e}", exc_info=True)
        raise

    # commit_transaction ends the transaction even when it fails
    try:
        db.commit_transaction()
    except Exception as e:
        logger.error(f"Commit failed for upload {upload_id}: {e}", exc_info=True)
        raise

    if result.status == STATUS_MISSING_SNAPSHOT:
        logger.warning(
            f"No bulk snapshot for upload {upload_id} "
            f"(account {account_id}, exported {exported_at_date})"
        )
    elif debug:
        logger.info(
            f"Mapping complete: upload {upload_id} "
            f"({result.fact_rows} facts, {result.issue_rows} issues)"
        )

    return result


def map_uploads(
    uploads: Iterable[Dict[str, str]],
    db: DatabaseClient,
    settings: Optional[MappingSettings] = None,
    debug: bool = False
) -> List[MapUploadResult]:
    """
    Map several uploads one after another.

    Each upload is mapped in its own transaction. The first failure stops
    the run; uploads mapped before it stay committed.

    Args:
        uploads: Dictionaries with upload_id and report_type
        db: Database client instance
        settings: Mapping settings
        debug: Log each step of each pass

    Returns:
        One MapUploadResult per upload, in input order
    """
    results = []
    for upload in uploads:
        results.append(map_upload(
            upload["upload_id"],
            upload["report_type"],
            db,
            settings=settings,
            debug=debug
        ))
    return results
