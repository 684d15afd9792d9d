"""SQLite persistence for thesis runs."""

from scout.store.thesis_store import Finding, StoredCompany, ThesisDetail, ThesisPage, ThesisStore

__all__ = ["Finding", "StoredCompany", "ThesisDetail", "ThesisPage", "ThesisStore"]
