from typing import Any, Dict

import structlog

from issue_desk.issues import repo
from issue_desk.issues.errors import NotFoundError, ValidationError
from issue_desk.issues.status import CarrierFault

log = structlog.get_logger(__name__)


def set_carrier_fault(issue_id: str, value: str) -> Dict[str, Any]:
    # Liability bookkeeping only: allowed in any status, concluded or not.
    try:
        fault = CarrierFault(value)
    except ValueError:
        raise ValidationError(
            "Invalid carrier fault. Must be UNKNOWN, CARRIER_FAULT, or NOT_CARRIER_FAULT"
        ) from None

    if not repo.set_carrier_fault(issue_id, fault.value):
        raise NotFoundError("Issue not found")

    log.info("carrier_fault_set", issue_id=issue_id, carrier_fault=fault.value)
    return repo.get_issue(issue_id)
