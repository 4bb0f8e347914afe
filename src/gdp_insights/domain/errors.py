from __future__ import annotations

"""Error taxonomy shared by the validator, gateway and summarizer.

Each error carries a stable ``code`` and the HTTP status the API maps it to.
``errors`` is the per-field mapping clients render inline (``_form`` holds
form-level messages).
"""

from typing import Dict, List, Optional


FORM_FIELD = "_form"


class GdpError(Exception):
    code = "error"
    status_code = 500

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: Dict[str, List[str]] = dict(errors or {})

    def to_dict(self) -> Dict[str, object]:
        body: Dict[str, object] = {"detail": self.message, "code": self.code}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(GdpError):
    code = "validation_error"
    status_code = 422

    def __init__(self, errors: Dict[str, List[str]]) -> None:
        super().__init__("Submitted record is invalid.", errors)


class DuplicateYear(GdpError):
    code = "duplicate_year"
    status_code = 409

    def __init__(self, year: int) -> None:
        message = (
            "A record for this year already exists. "
            "Please edit the existing record or choose a different year."
        )
        super().__init__(message, {FORM_FIELD: [message]})
        self.year = year


class InvalidInput(GdpError):
    code = "invalid_input"
    status_code = 400


class NotFound(GdpError):
    code = "not_found"
    status_code = 404

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Record {record_id} not found.")
        self.record_id = record_id


class StoreError(GdpError):
    code = "store_error"
    status_code = 503


class NoData(GdpError):
    code = "no_data"
    status_code = 200

    def __init__(self) -> None:
        super().__init__("No data available for analysis.")


class AnalysisFailed(GdpError):
    code = "analysis_failed"
    status_code = 200

    def __init__(self) -> None:
        super().__init__("Failed to perform trend analysis.")
