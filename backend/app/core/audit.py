"""
Audit logging for inventory and distribution events.

Every change to a medicine and every committed distribution is logged with
who did it, what it touched, and when, one JSON document per line.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Optional, Dict

from app.core.security import OperatorIdentity

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging for business-critical events."""

    @staticmethod
    def log_action(
        action: str,  # "create", "update", "soft_delete", "restore"
        resource_type: str,  # "medicine", "distribution"
        resource_id: str,
        operator: OperatorIdentity,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Usage:
            AuditLog.log_action("soft_delete", "medicine", medicine.id, operator)
            AuditLog.log_action("update", "medicine", medicine.id, operator, changes={"stock": 40})
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"{resource_type}.{action}",
            "operator_id": operator.id,
            "operator_username": operator.username,
            "resource_id": resource_id,
        }

        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_distribution(
        operator: OperatorIdentity,
        staff_user_id: str,
        staff_national_id: str,
        lines: Dict[str, int],  # medicine_id -> quantity
        record_ids: list,
    ):
        log_entry = {
            "timestamp": _now(),
            "event_type": "distribution.create",
            "operator_id": operator.id,
            "operator_username": operator.username,
            "staff_user_id": staff_user_id,
            "staff_national_id": staff_national_id,
            "lines": lines,
            "record_ids": record_ids,
        }
        audit_logger.info(json.dumps(log_entry))

    @staticmethod
    def log_access_denied(
        path: str,
        operator_id: str,
        required_role: str,
    ):
        """
        Log denied access attempts.

        Usage:
            AuditLog.log_access_denied("/pharmacy/medicines/distribute", "op-1", "pharmacy:distribute")
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "access_denied",
            "path": path,
            "operator_id": operator_id,
            "required_role": required_role,
        }

        audit_logger.warning(json.dumps(log_entry))
